"""Infrastructure helpers scoped to the activities domain."""

from . import redis_streams  # noqa: F401

__all__ = ["redis_streams"]
