"""Outbound registration events and the sink contract they are handed to."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

from activitydesk.activities.domain import models


class RegistrationEventKind(str, Enum):
	VISITOR_REGISTRATION = "visitor_registration"
	VISITOR_UNREGISTRATION = "visitor_unregistration"
	WAITINGLIST_ADDITION = "waitinglist_addition"
	WAITINGLIST_REMOVAL = "waitinglist_removal"


@dataclass(frozen=True, slots=True)
class RegistrationEvent:
	"""Emitted once per committed registration state transition."""

	kind: RegistrationEventKind
	activity: models.Activity
	member_id: str
	occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationSink(Protocol):
	"""One-way receiver of registration notifications.

	``occurred_at`` is the commit time of the transition; sinks stamp their own
	time only when it is missing.
	"""

	async def visitor_registration(
		self, activity: models.Activity, member_id: str, *, occurred_at: datetime | None = None
	) -> None: ...

	async def visitor_unregistration(
		self, activity: models.Activity, member_id: str, *, occurred_at: datetime | None = None
	) -> None: ...

	async def waitinglist_addition(
		self, activity: models.Activity, member_id: str, *, occurred_at: datetime | None = None
	) -> None: ...

	async def waitinglist_removal(
		self, activity: models.Activity, member_id: str, *, occurred_at: datetime | None = None
	) -> None: ...


async def dispatch(sink: NotificationSink, event: RegistrationEvent) -> None:
	"""Hand ``event`` to the sink method named after its kind."""
	handler = getattr(sink, event.kind.value)
	await handler(event.activity, event.member_id, occurred_at=event.occurred_at)


def make_event(
	kind: RegistrationEventKind,
	activity: models.Activity,
	member_id: str,
	occurred_at: datetime | None = None,
) -> RegistrationEvent:
	if occurred_at is None:
		return RegistrationEvent(kind, activity, member_id)
	return RegistrationEvent(kind, activity, member_id, occurred_at)


__all__ = [
	"NotificationSink",
	"RegistrationEvent",
	"RegistrationEventKind",
	"dispatch",
	"make_event",
]
