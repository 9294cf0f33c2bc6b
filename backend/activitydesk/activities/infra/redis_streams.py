"""Redis stream fan-out of registration notifications."""

from __future__ import annotations

from datetime import datetime

from activitydesk.activities.domain import events, models
from activitydesk.activities.domain.notifications import RegistrationEvent, RegistrationEventKind, make_event
from activitydesk.infra.redis import redis_client
from activitydesk.settings import settings


class RedisStreamNotificationSink:
	"""Appends one stream entry per registration event.

	Consumers (mail, chat, dashboards) read the stream; delivery and retries are
	theirs.
	"""

	def __init__(self, stream: str | None = None, *, maxlen: int | None = 10_000) -> None:
		self.stream = stream or settings.activities_notification_stream
		self.maxlen = maxlen

	async def publish(self, event: RegistrationEvent) -> None:
		await redis_client.xadd(
			self.stream,
			events.registration_payload(event),
			maxlen=self.maxlen,
			approximate=True,
		)

	async def visitor_registration(
		self, activity: models.Activity, member_id: str, *, occurred_at: datetime | None = None
	) -> None:
		await self.publish(make_event(RegistrationEventKind.VISITOR_REGISTRATION, activity, member_id, occurred_at))

	async def visitor_unregistration(
		self, activity: models.Activity, member_id: str, *, occurred_at: datetime | None = None
	) -> None:
		await self.publish(make_event(RegistrationEventKind.VISITOR_UNREGISTRATION, activity, member_id, occurred_at))

	async def waitinglist_addition(
		self, activity: models.Activity, member_id: str, *, occurred_at: datetime | None = None
	) -> None:
		await self.publish(make_event(RegistrationEventKind.WAITINGLIST_ADDITION, activity, member_id, occurred_at))

	async def waitinglist_removal(
		self, activity: models.Activity, member_id: str, *, occurred_at: datetime | None = None
	) -> None:
		await self.publish(make_event(RegistrationEventKind.WAITINGLIST_REMOVAL, activity, member_id, occurred_at))


__all__ = ["RedisStreamNotificationSink"]
