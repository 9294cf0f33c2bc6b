"""Registration and waitinglist orchestration for activities."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from activitydesk.activities.domain import models
from activitydesk.activities.domain import repo as repo_module
from activitydesk.activities.domain.exceptions import NotFoundError
from activitydesk.activities.domain.notifications import (
	NotificationSink,
	RegistrationEvent,
	RegistrationEventKind,
	dispatch,
)
from activitydesk.activities.infra import redis_streams
from activitydesk.obs import metrics as obs_metrics
from activitydesk.obs.logging import log_context

_LOG = logging.getLogger(__name__)

REGISTRATION_NOT_NOW = "registration_not_now"
REGISTRATION_NOT_POSSIBLE = "registration_not_possible"
WAITINGLIST_NOT_POSSIBLE = "waitinglist_not_possible"
NO_WAITINGLIST = "no_waitinglist"


@dataclass(frozen=True, slots=True)
class RegistrationOutcome:
	"""Result of a registration call that did not raise.

	Both status fields are ``None`` on success; on a domain rejection they carry
	message keys for the presentation layer.
	"""

	status_title: Optional[str] = None
	status_text: Optional[str] = None

	@property
	def succeeded(self) -> bool:
		return self.status_title is None and self.status_text is None


_APPLIED = RegistrationOutcome()
_REGISTRATION_REJECTED = RegistrationOutcome(REGISTRATION_NOT_NOW, REGISTRATION_NOT_POSSIBLE)
_WAITINGLIST_REJECTED = RegistrationOutcome(WAITINGLIST_NOT_POSSIBLE, NO_WAITINGLIST)


class RegistrationService:
	"""Loads an activity, applies one membership change, persists it and notifies."""

	def __init__(
		self,
		store: repo_module.ActivityStore | None = None,
		notifier: NotificationSink | None = None,
		*,
		clock: Callable[[], datetime] | None = None,
	) -> None:
		self.store = store or repo_module.ActivityRepository()
		self.notifier = notifier or redis_streams.RedisStreamNotificationSink()
		self._clock = clock or (lambda: datetime.now(timezone.utc))

	async def add_visitor_to(
		self,
		member_id: str,
		url: str,
		now: datetime,
		*,
		resource_name: str | None = None,
	) -> RegistrationOutcome:
		return await self._apply(
			"add_visitor",
			member_id,
			url,
			lambda activity: activity.add_member_id(member_id, resource_name, now),
			RegistrationEventKind.VISITOR_REGISTRATION,
			_REGISTRATION_REJECTED,
		)

	async def remove_visitor_from(
		self,
		member_id: str,
		url: str,
		*,
		resource_name: str | None = None,
	) -> RegistrationOutcome:
		def _remove(activity: models.Activity) -> bool:
			activity.remove_member_id(member_id, resource_name)
			return True

		return await self._apply(
			"remove_visitor",
			member_id,
			url,
			_remove,
			RegistrationEventKind.VISITOR_UNREGISTRATION,
			_APPLIED,
		)

	async def add_to_waitinglist(
		self,
		member_id: str,
		url: str,
		now: datetime,
		*,
		resource_name: str | None = None,
	) -> RegistrationOutcome:
		return await self._apply(
			"add_to_waitinglist",
			member_id,
			url,
			lambda activity: activity.add_to_waitinglist(member_id, resource_name, now),
			RegistrationEventKind.WAITINGLIST_ADDITION,
			_WAITINGLIST_REJECTED,
		)

	async def remove_from_waitinglist(
		self,
		member_id: str,
		url: str,
		*,
		resource_name: str | None = None,
	) -> RegistrationOutcome:
		def _remove(activity: models.Activity) -> bool:
			activity.remove_from_waitinglist(member_id, resource_name)
			return True

		return await self._apply(
			"remove_from_waitinglist",
			member_id,
			url,
			_remove,
			RegistrationEventKind.WAITINGLIST_REMOVAL,
			_APPLIED,
		)

	# ------------------------------------------------------------------
	# Helpers

	async def _load(self, url: str) -> models.Activity:
		activity = await self.store.get_activity(url)
		if activity is None:
			raise NotFoundError("activity_not_found")
		return activity

	async def _apply(
		self,
		operation: str,
		member_id: str,
		url: str,
		mutate: Callable[[models.Activity], bool],
		kind: RegistrationEventKind,
		rejection: RegistrationOutcome,
	) -> RegistrationOutcome:
		with log_context(activity_url=url, member_id=member_id):
			try:
				activity = await self._load(url)
				# No await between the mutation and the save; nothing else touches this snapshot.
				if not mutate(activity):
					obs_metrics.inc_registration_operation(operation, "rejected")
					_LOG.info("registration.rejected", extra={"operation": operation})
					return rejection
				await self.store.save_activity(activity)
			except Exception:
				obs_metrics.inc_registration_operation(operation, "failed")
				raise
			obs_metrics.inc_registration_operation(operation, "applied")
			_LOG.info("registration.applied", extra={"operation": operation})
			await self._notify(RegistrationEvent(kind=kind, activity=activity, member_id=member_id, occurred_at=self._clock()))
			return _APPLIED

	async def _notify(self, event: RegistrationEvent) -> None:
		try:
			await dispatch(self.notifier, event)
		except Exception:
			obs_metrics.inc_notification_failure(event.kind.value)
			_LOG.exception("notification.failed", extra={"kind": event.kind.value})
			return
		obs_metrics.inc_notification_dispatched(event.kind.value)


__all__ = [
	"NO_WAITINGLIST",
	"REGISTRATION_NOT_NOW",
	"REGISTRATION_NOT_POSSIBLE",
	"RegistrationOutcome",
	"RegistrationService",
	"WAITINGLIST_NOT_POSSIBLE",
]
