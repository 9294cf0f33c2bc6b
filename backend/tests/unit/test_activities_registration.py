from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from activitydesk.activities.domain import models
from activitydesk.activities.domain.exceptions import AmbiguousResourceError, ConflictError, NotFoundError
from activitydesk.activities.domain.registration_service import (
	NO_WAITINGLIST,
	REGISTRATION_NOT_NOW,
	REGISTRATION_NOT_POSSIBLE,
	WAITINGLIST_NOT_POSSIBLE,
	RegistrationService,
)

NOW = datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)
URL = "activity-url"


class _FakeStore:
	"""Versioned in-memory store; every load hands out an independent copy."""

	def __init__(self, *activities: models.Activity, load_error: Exception | None = None) -> None:
		self.activities = {activity.url: activity.model_copy(deep=True) for activity in activities}
		self.load_error = load_error
		self.save_error: Exception | None = None
		self.loads = 0
		self.saves: list[models.Activity] = []

	async def get_activity(self, url: str):
		self.loads += 1
		await asyncio.sleep(0)
		if self.load_error is not None:
			raise self.load_error
		stored = self.activities.get(url)
		return stored.model_copy(deep=True) if stored else None

	async def save_activity(self, activity: models.Activity) -> None:
		await asyncio.sleep(0)
		if self.save_error is not None:
			raise self.save_error
		current = self.activities.get(activity.url)
		if current is not None and current.version != activity.version:
			raise ConflictError("activity_version_conflict")
		activity.version += 1
		self.activities[activity.url] = activity.model_copy(deep=True)
		self.saves.append(activity)

	def stored(self, url: str = URL) -> models.Activity:
		return self.activities[url]


class _RecordingSink:
	def __init__(self, fail: bool = False) -> None:
		self.fail = fail
		self.calls: list[tuple[str, models.Activity, str]] = []
		self.stamps: list = []

	async def _record(self, kind: str, activity: models.Activity, member_id: str, occurred_at=None) -> None:
		self.calls.append((kind, activity, member_id))
		self.stamps.append(occurred_at)
		if self.fail:
			raise RuntimeError("mail server down")

	async def visitor_registration(self, activity, member_id, *, occurred_at=None):
		await self._record("visitor_registration", activity, member_id, occurred_at)

	async def visitor_unregistration(self, activity, member_id, *, occurred_at=None):
		await self._record("visitor_unregistration", activity, member_id, occurred_at)

	async def waitinglist_addition(self, activity, member_id, *, occurred_at=None):
		await self._record("waitinglist_addition", activity, member_id, occurred_at)

	async def waitinglist_removal(self, activity, member_id, *, occurred_at=None):
		await self._record("waitinglist_removal", activity, member_id, occurred_at)


def _activity_with_einzelzimmer(resource: models.Resource) -> models.Activity:
	return models.Activity(url=URL, title="Title of the Activity", resources={"Veranstaltung": resource})


def _service(store: _FakeStore, sink: _RecordingSink | None = None) -> tuple[RegistrationService, _RecordingSink]:
	sink = sink or _RecordingSink()
	return RegistrationService(store=store, notifier=sink), sink


def _registered(*member_ids: str) -> list[models.RegistrationEntry]:
	return [models.RegistrationEntry(member_id=member_id, registered_at=NOW) for member_id in member_ids]


# --- adding a visitor -------------------------------------------------------


@pytest.mark.asyncio
async def test_add_visitor_succeeds_without_status_and_notifies_once():
	store = _FakeStore(_activity_with_einzelzimmer(models.Resource(limit=2)))
	service, sink = _service(store)

	outcome = await service.add_visitor_to("memberId", URL, NOW)

	assert outcome.status_title is None
	assert outcome.status_text is None
	assert outcome.succeeded
	assert store.stored().all_registered_member_ids() == ["memberId"]
	assert len(store.saves) == 1
	assert [(kind, member_id) for kind, _, member_id in sink.calls] == [("visitor_registration", "memberId")]
	assert sink.calls[0][1] is store.saves[0]


@pytest.mark.asyncio
async def test_injected_clock_stamps_every_notification():
	committed_at = datetime(2001, 1, 1, tzinfo=timezone.utc)
	store = _FakeStore(_activity_with_einzelzimmer(models.Resource(limit=2, waitinglist=[])))
	sink = _RecordingSink()
	service = RegistrationService(store=store, notifier=sink, clock=lambda: committed_at)

	await service.add_to_waitinglist("memberId", URL, NOW)
	await service.add_visitor_to("otherId", URL, NOW)

	assert sink.stamps == [committed_at, committed_at]


@pytest.mark.asyncio
async def test_add_visitor_to_full_resource_returns_status_without_persist_or_notify():
	store = _FakeStore(_activity_with_einzelzimmer(models.Resource(limit=1, registered_members=_registered("otherId"))))
	service, sink = _service(store)

	outcome = await service.add_visitor_to("memberId", URL, NOW)

	assert outcome.status_title == REGISTRATION_NOT_NOW
	assert outcome.status_text == REGISTRATION_NOT_POSSIBLE
	assert outcome.succeeded is False
	assert store.saves == []
	assert sink.calls == []
	assert store.stored().all_registered_member_ids() == ["otherId"]


@pytest.mark.asyncio
async def test_add_visitor_with_capacity_property():
	capacity = 4
	store = _FakeStore(_activity_with_einzelzimmer(models.Resource(limit=capacity)))
	service, sink = _service(store)

	outcomes = [await service.add_visitor_to(f"member{idx}", URL, NOW) for idx in range(capacity + 1)]

	assert [outcome.succeeded for outcome in outcomes] == [True] * capacity + [False]
	assert len(store.stored().all_registered_member_ids()) == capacity
	assert len(sink.calls) == sum(outcome.succeeded for outcome in outcomes)


@pytest.mark.asyncio
async def test_add_visitor_to_named_resource():
	activity = models.Activity(
		url=URL,
		resources={"Einzelzimmer": models.Resource(limit=1), "Doppelzimmer": models.Resource(limit=2)},
	)
	store = _FakeStore(activity)
	service, _ = _service(store)

	outcome = await service.add_visitor_to("memberId", URL, NOW, resource_name="Doppelzimmer")

	assert outcome.succeeded
	assert store.stored().resource_named("Doppelzimmer").registered_member_ids() == ["memberId"]
	assert store.stored().resource_named("Einzelzimmer").registered_member_ids() == []


@pytest.mark.asyncio
async def test_add_visitor_without_name_on_several_resources_raises():
	activity = models.Activity(url=URL, resources={"Einzelzimmer": models.Resource(), "Doppelzimmer": models.Resource()})
	store = _FakeStore(activity)
	service, sink = _service(store)

	with pytest.raises(AmbiguousResourceError):
		await service.add_visitor_to("memberId", URL, NOW)
	assert store.saves == []
	assert sink.calls == []


# --- removing a visitor -----------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize("registration_open", [True, False])
async def test_remove_visitor_succeeds_whether_or_not_registration_is_open(registration_open):
	store = _FakeStore(
		_activity_with_einzelzimmer(
			models.Resource(registration_open=registration_open, registered_members=_registered("memberId", "otherId"))
		)
	)
	service, sink = _service(store)

	outcome = await service.remove_visitor_from("memberId", URL)

	assert outcome.succeeded
	assert store.stored().all_registered_member_ids() == ["otherId"]
	assert [(kind, member_id) for kind, _, member_id in sink.calls] == [("visitor_unregistration", "memberId")]


@pytest.mark.asyncio
async def test_remove_absent_visitor_still_persists_and_notifies():
	store = _FakeStore(_activity_with_einzelzimmer(models.Resource(registered_members=_registered("otherId"))))
	service, sink = _service(store)

	await service.remove_visitor_from("memberId", URL)
	await service.remove_visitor_from("memberId", URL)

	assert len(store.saves) == 2
	assert [kind for kind, _, _ in sink.calls] == ["visitor_unregistration", "visitor_unregistration"]
	assert store.stored().all_registered_member_ids() == ["otherId"]


# --- waitinglist ------------------------------------------------------------


@pytest.mark.asyncio
async def test_add_to_waitinglist_succeeds_when_resource_has_waitinglist():
	store = _FakeStore(_activity_with_einzelzimmer(models.Resource(waitinglist=[])))
	service, sink = _service(store)

	outcome = await service.add_to_waitinglist("memberId", URL, NOW)

	assert outcome.status_title is None
	assert outcome.status_text is None
	assert store.stored().all_waitinglist_member_ids() == ["memberId"]
	assert len(sink.calls) == 1
	kind, activity, member_id = sink.calls[0]
	assert kind == "waitinglist_addition"
	assert member_id == "memberId"
	assert activity.url == URL


@pytest.mark.asyncio
async def test_add_to_waitinglist_gives_status_when_there_is_no_waitinglist():
	store = _FakeStore(_activity_with_einzelzimmer(models.Resource()))
	service, sink = _service(store)

	outcome = await service.add_to_waitinglist("memberId", URL, NOW)

	assert outcome.status_title == WAITINGLIST_NOT_POSSIBLE
	assert outcome.status_text == NO_WAITINGLIST
	assert "memberId" not in store.stored().all_waitinglist_member_ids()
	assert store.saves == []
	assert sink.calls == []


@pytest.mark.asyncio
async def test_remove_from_waitinglist_keeps_others_and_notifies():
	waiting = [models.RegistrationEntry(member_id=member_id, registered_at=NOW) for member_id in ("memberId", "otherId")]
	store = _FakeStore(_activity_with_einzelzimmer(models.Resource(waitinglist=waiting)))
	service, sink = _service(store)

	outcome = await service.remove_from_waitinglist("memberId", URL)

	assert outcome.succeeded
	assert store.stored().all_waitinglist_member_ids() == ["otherId"]
	assert [(kind, member_id) for kind, _, member_id in sink.calls] == [("waitinglist_removal", "memberId")]


@pytest.mark.asyncio
async def test_remove_from_waitinglist_notifies_even_without_waitinglist():
	store = _FakeStore(_activity_with_einzelzimmer(models.Resource(registered_members=_registered("memberId", "otherId"))))
	service, sink = _service(store)

	await service.remove_from_waitinglist("memberId", URL)

	assert [kind for kind, _, _ in sink.calls] == ["waitinglist_removal"]
	assert store.stored().all_registered_member_ids() == ["memberId", "otherId"]


# --- failures ---------------------------------------------------------------


_OPERATIONS = [
	("add_visitor_to", (NOW,)),
	("remove_visitor_from", ()),
	("add_to_waitinglist", (NOW,)),
	("remove_from_waitinglist", ()),
]


@pytest.mark.asyncio
@pytest.mark.parametrize("operation,extra_args", _OPERATIONS)
async def test_load_error_propagates_without_persist_or_notify(operation, extra_args):
	error = OSError("connection reset")
	store = _FakeStore(load_error=error)
	service, sink = _service(store)

	with pytest.raises(OSError) as excinfo:
		await getattr(service, operation)("memberId", URL, *extra_args)

	assert excinfo.value is error
	assert store.saves == []
	assert sink.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("operation,extra_args", _OPERATIONS)
async def test_missing_activity_raises_not_found(operation, extra_args):
	store = _FakeStore()
	service, sink = _service(store)

	with pytest.raises(NotFoundError) as excinfo:
		await getattr(service, operation)("memberId", "no-such-activity", *extra_args)

	assert excinfo.value.detail == "activity_not_found"
	assert sink.calls == []


@pytest.mark.asyncio
async def test_save_error_propagates_and_skips_notification():
	store = _FakeStore(_activity_with_einzelzimmer(models.Resource(limit=3)))
	store.save_error = RuntimeError("disk full")
	service, sink = _service(store)

	with pytest.raises(RuntimeError):
		await service.add_visitor_to("memberId", URL, NOW)

	assert sink.calls == []
	assert store.stored().all_registered_member_ids() == []


@pytest.mark.asyncio
async def test_notification_failure_does_not_mask_success():
	store = _FakeStore(_activity_with_einzelzimmer(models.Resource(limit=3)))
	service, sink = _service(store, _RecordingSink(fail=True))

	outcome = await service.add_visitor_to("memberId", URL, NOW)

	assert outcome.succeeded
	assert len(sink.calls) == 1
	assert store.stored().all_registered_member_ids() == ["memberId"]


# --- concurrency ------------------------------------------------------------


@pytest.mark.asyncio
async def test_concurrent_registrations_on_same_activity_never_overbook():
	store = _FakeStore(_activity_with_einzelzimmer(models.Resource(limit=1)))
	service, sink = _service(store)

	results = await asyncio.gather(
		service.add_visitor_to("first", URL, NOW),
		service.add_visitor_to("second", URL, NOW),
		return_exceptions=True,
	)

	applied = [result for result in results if not isinstance(result, Exception) and result.succeeded]
	others = [result for result in results if isinstance(result, ConflictError) or not getattr(result, "succeeded", True)]
	assert len(applied) == 1
	assert len(others) == 1
	assert len(store.stored().all_registered_member_ids()) == 1
	assert len(sink.calls) == len(applied)


@pytest.mark.asyncio
async def test_concurrent_operations_on_different_activities_are_independent():
	first = models.Activity(url="first", resources={"Veranstaltung": models.Resource(limit=1)})
	second = models.Activity(url="second", resources={"Veranstaltung": models.Resource(limit=1, waitinglist=[])})
	store = _FakeStore(first, second)
	service, sink = _service(store)

	await asyncio.gather(
		service.add_visitor_to("memberId", "first", NOW),
		service.add_to_waitinglist("memberId", "second", NOW),
	)

	assert store.stored("first").all_registered_member_ids() == ["memberId"]
	assert store.stored("second").all_waitinglist_member_ids() == ["memberId"]
	assert sorted(kind for kind, _, _ in sink.calls) == ["visitor_registration", "waitinglist_addition"]
