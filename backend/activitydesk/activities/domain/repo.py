"""Async repository for activity aggregates."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Mapping, Protocol

import asyncpg

from activitydesk.activities.domain import models
from activitydesk.activities.domain.exceptions import ConflictError
from activitydesk.infra.postgres import get_pool


class ActivityStore(Protocol):
	"""Load/persist contract the registration core depends on."""

	async def get_activity(self, url: str) -> models.Activity | None: ...

	async def save_activity(self, activity: models.Activity) -> None: ...


def _to_state(activity: models.Activity) -> str:
	return activity.model_dump_json(exclude={"id", "url", "version"})


def _from_record(record: Mapping[str, Any]) -> models.Activity:
	state = record["state"]
	if isinstance(state, str):
		state = json.loads(state)
	return models.Activity.model_validate(
		{**state, "id": str(record["id"]), "url": record["url"], "version": record["version"]}
	)


class ActivityRepository:
	"""Thin data-access layer around asyncpg.

	Each activity is one row with its full state as JSONB. ``version`` is bumped
	on every write and checked on update, so a save computed from a stale load
	fails with ``ConflictError`` instead of overwriting a concurrent change.
	"""

	async def get_activity(self, url: str) -> models.Activity | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT id, url, state, version FROM activity WHERE url=$1", url)
		return _from_record(record) if record else None

	async def get_activity_for_id(self, activity_id: str) -> models.Activity | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT id, url, state, version FROM activity WHERE id=$1", activity_id)
		return _from_record(record) if record else None

	async def all_activities(self) -> list[models.Activity]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch("SELECT id, url, state, version FROM activity ORDER BY start_at NULLS LAST, url")
		return [_from_record(record) for record in records]

	async def upcoming_activities(self, now: datetime) -> list[models.Activity]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT id, url, state, version FROM activity
				WHERE end_at >= $1
				ORDER BY start_at ASC
				""",
				now,
			)
		return [_from_record(record) for record in records]

	async def past_activities(self, now: datetime) -> list[models.Activity]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT id, url, state, version FROM activity
				WHERE end_at < $1
				ORDER BY start_at DESC
				""",
				now,
			)
		return [_from_record(record) for record in records]

	async def save_activity(self, activity: models.Activity) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			if activity.version == 0:
				try:
					await conn.execute(
						"""
						INSERT INTO activity (id, url, state, start_at, end_at, version)
						VALUES ($1, $2, $3::jsonb, $4, $5, 1)
						""",
						activity.id,
						activity.url,
						_to_state(activity),
						activity.start_at,
						activity.end_at,
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise ConflictError("activity_url_exists") from exc
			else:
				result = await conn.execute(
					"""
					UPDATE activity
					SET state=$3::jsonb, start_at=$4, end_at=$5, version=version + 1, updated_at=NOW()
					WHERE id=$1 AND version=$2
					""",
					activity.id,
					activity.version,
					_to_state(activity),
					activity.start_at,
					activity.end_at,
				)
				if result.split()[-1] == "0":
					raise ConflictError("activity_version_conflict")
		activity.version += 1


__all__ = ["ActivityRepository", "ActivityStore"]
