"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

REGISTRATION_OPERATIONS = Counter(
	"activitydesk_registration_operations_total",
	"Registration service operations segmented by outcome",
	["operation", "outcome"],
)

NOTIFICATIONS_DISPATCHED = Counter(
	"activitydesk_notifications_dispatched_total",
	"Registration notifications handed to a sink",
	["kind"],
)

NOTIFICATION_FAILURES = Counter(
	"activitydesk_notification_failures_total",
	"Registration notifications whose delivery raised",
	["kind"],
)

NOTIFICATIONS_DROPPED = Counter(
	"activitydesk_notifications_dropped_total",
	"Queued notifications dropped because the dispatch queue was full",
	["kind"],
)

NOTIFICATION_QUEUE_DEPTH = Gauge(
	"activitydesk_notification_queue_depth",
	"Notifications waiting in the dispatch queue",
)


def inc_registration_operation(operation: str, outcome: str) -> None:
	REGISTRATION_OPERATIONS.labels(operation=operation, outcome=outcome).inc()


def inc_notification_dispatched(kind: str) -> None:
	NOTIFICATIONS_DISPATCHED.labels(kind=kind).inc()


def inc_notification_failure(kind: str) -> None:
	NOTIFICATION_FAILURES.labels(kind=kind).inc()


def inc_notification_dropped(kind: str) -> None:
	NOTIFICATIONS_DROPPED.labels(kind=kind).inc()


def set_notification_queue_depth(depth: int) -> None:
	NOTIFICATION_QUEUE_DEPTH.set(depth)
