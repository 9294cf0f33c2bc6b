"""Background worker that delivers queued registration notifications."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from activitydesk.activities.domain import models
from activitydesk.activities.domain.notifications import (
	NotificationSink,
	RegistrationEvent,
	RegistrationEventKind,
	dispatch,
	make_event,
)
from activitydesk.obs import metrics as obs_metrics
from activitydesk.settings import settings

_LOG = logging.getLogger(__name__)


class QueuedNotificationSink:
	"""Sink that only enqueues; a ``NotificationDispatcher`` does the delivery.

	Enqueueing never blocks: when the queue is full the event is dropped and
	counted.
	"""

	def __init__(self, queue: asyncio.Queue[RegistrationEvent] | None = None, *, maxsize: int | None = None) -> None:
		self.queue: asyncio.Queue[RegistrationEvent] = queue or asyncio.Queue(
			maxsize=settings.notification_queue_maxsize if maxsize is None else maxsize
		)

	def enqueue(self, event: RegistrationEvent) -> bool:
		try:
			self.queue.put_nowait(event)
		except asyncio.QueueFull:
			obs_metrics.inc_notification_dropped(event.kind.value)
			_LOG.warning("notification.dropped", extra={"kind": event.kind.value, "activity_id": event.activity.id})
			return False
		obs_metrics.set_notification_queue_depth(self.queue.qsize())
		return True

	async def visitor_registration(
		self, activity: models.Activity, member_id: str, *, occurred_at: datetime | None = None
	) -> None:
		self.enqueue(make_event(RegistrationEventKind.VISITOR_REGISTRATION, activity, member_id, occurred_at))

	async def visitor_unregistration(
		self, activity: models.Activity, member_id: str, *, occurred_at: datetime | None = None
	) -> None:
		self.enqueue(make_event(RegistrationEventKind.VISITOR_UNREGISTRATION, activity, member_id, occurred_at))

	async def waitinglist_addition(
		self, activity: models.Activity, member_id: str, *, occurred_at: datetime | None = None
	) -> None:
		self.enqueue(make_event(RegistrationEventKind.WAITINGLIST_ADDITION, activity, member_id, occurred_at))

	async def waitinglist_removal(
		self, activity: models.Activity, member_id: str, *, occurred_at: datetime | None = None
	) -> None:
		self.enqueue(make_event(RegistrationEventKind.WAITINGLIST_REMOVAL, activity, member_id, occurred_at))


class NotificationDispatcher:
	"""Drains a ``QueuedNotificationSink`` into a downstream sink."""

	def __init__(
		self,
		source: QueuedNotificationSink,
		target: NotificationSink,
		*,
		batch_size: int = 50,
		poll_interval: float = 0.5,
	) -> None:
		self.source = source
		self.target = target
		self.batch_size = batch_size
		self.poll_interval = poll_interval
		self._running = False

	async def run_forever(self) -> None:
		self._running = True
		while self._running:
			delivered = await self.process_once()
			if delivered == 0:
				await asyncio.sleep(self.poll_interval)

	def stop(self) -> None:
		self._running = False

	async def process_once(self) -> int:
		"""Deliver up to ``batch_size`` queued events; return how many succeeded."""
		delivered = 0
		for _ in range(self.batch_size):
			try:
				event = self.source.queue.get_nowait()
			except asyncio.QueueEmpty:
				break
			try:
				await dispatch(self.target, event)
			except Exception:
				obs_metrics.inc_notification_failure(event.kind.value)
				_LOG.exception(
					"notification_dispatcher.failed",
					extra={"kind": event.kind.value, "activity_id": event.activity.id},
				)
				continue
			finally:
				self.source.queue.task_done()
			obs_metrics.inc_notification_dispatched(event.kind.value)
			delivered += 1
		obs_metrics.set_notification_queue_depth(self.source.queue.qsize())
		return delivered


__all__ = ["NotificationDispatcher", "QueuedNotificationSink"]
