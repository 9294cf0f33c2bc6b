"""Helper utilities to format stream payloads for activities."""

from __future__ import annotations

from activitydesk.activities.domain.notifications import RegistrationEvent


def registration_payload(event: RegistrationEvent) -> dict[str, str]:
	# Redis stream fields must be flat strings
	return {
		"event": event.kind.value,
		"entity": "activity",
		"id": event.activity.id,
		"url": event.activity.url,
		"member_id": event.member_id,
		"ts": event.occurred_at.isoformat(),
	}
