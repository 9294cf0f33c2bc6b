import sys
from pathlib import Path

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from activitydesk.infra import postgres  # noqa: E402
from activitydesk.infra.redis import redis_client, set_redis_client  # noqa: E402


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def no_postgres(monkeypatch):
	async def _refuse():
		raise AssertionError("unit tests must not open a postgres pool")

	monkeypatch.setattr(postgres, "init_pool", _refuse)
