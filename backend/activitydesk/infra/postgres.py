"""Shared asyncpg pool for the activity store."""

from __future__ import annotations

import logging
from typing import Optional

import asyncpg

from activitydesk.settings import settings

_LOG = logging.getLogger(__name__)

_pool: Optional[asyncpg.pool.Pool] = None


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		_pool = await asyncpg.create_pool(
			dsn=settings.postgres_url,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			command_timeout=settings.postgres_command_timeout,
		)
		_LOG.info(
			"postgres.pool_ready",
			extra={"min_size": settings.postgres_min_pool_size, "max_size": settings.postgres_max_pool_size},
		)
	return _pool


def set_pool(pool: Optional[asyncpg.pool.Pool]) -> None:
	"""Install an externally created pool, or forget the current one with ``None``."""
	global _pool
	_pool = pool


async def get_pool() -> asyncpg.pool.Pool:
	if _pool is None:
		await init_pool()
	assert _pool is not None
	return _pool


async def close_pool() -> None:
	global _pool
	if _pool is None:
		return
	pool, _pool = _pool, None
	await pool.close()
	_LOG.info("postgres.pool_closed")
