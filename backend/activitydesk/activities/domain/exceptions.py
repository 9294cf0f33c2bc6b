"""Custom exceptions for activity services."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - fallback for older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class ActivityError(Exception):
	"""Base class for activity related errors."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "activity_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class NotFoundError(ActivityError):
	"""Thrown when an activity or resource is missing."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"


class ConflictError(ActivityError):
	"""Raised for conflicting writes (e.g., stale activity version)."""

	status_code = status.HTTP_409_CONFLICT
	detail = "conflict"


class ValidationError(ActivityError):
	"""Raised for invalid requests against an otherwise valid activity."""

	status_code = _HTTP_422
	detail = "validation_error"


class UnknownResourceError(NotFoundError):
	"""Raised when an activity has no resource with the requested name."""

	detail = "resource_not_found"


class AmbiguousResourceError(ValidationError):
	"""Raised when no resource name is given and the activity has several."""

	detail = "resource_ambiguous"
