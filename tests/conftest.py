import asyncio
import os
import tempfile

# Settings are read at import time, so point them to a throwaway SQLite file first
_db_dir = tempfile.mkdtemp(prefix="citymayor-test-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_db_dir, 'test.sqlite3')}"
os.environ["PEPPER_DATA"] = "test-pepper"

import httpx
import pytest

from citymayor.db import engine
from citymayor.main import app
from citymayor.models.dc_models import BuildingCreateModel
from citymayor.models.schemas import Base
from citymayor.notifier import notifier
from citymayor.services import catalog_db


class FakePubSub:
    def __init__(self, redis):
        self.redis = redis
        self.channels = set()
        self.queue = asyncio.Queue()
        self.closed = False

    async def subscribe(self, channel):
        self.channels.add(channel)
        self.redis.subscribers.append(self)

    async def unsubscribe(self, channel):
        self.channels.discard(channel)

    async def get_message(self, ignore_subscribe_messages=True, timeout=None):
        return await self.queue.get()

    async def aclose(self):
        self.closed = True
        if self in self.redis.subscribers:
            self.redis.subscribers.remove(self)


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis pub/sub."""

    def __init__(self):
        self.published = []
        self.subscribers = []

    async def publish(self, channel, message):
        self.published.append((channel, message))
        receivers = [s for s in self.subscribers if channel in s.channels]
        for subscriber in receivers:
            subscriber.queue.put_nowait({"type": "message", "channel": channel, "data": message})
        return len(receivers)

    def pubsub(self):
        return FakePubSub(self)


@pytest.fixture(autouse=True)
async def reset_database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    redis = FakeRedis()
    monkeypatch.setattr(notifier, "redis", redis)
    return redis


@pytest.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
def login(client):
    """Register (if needed) and log in, returning the bearer headers."""

    async def _login(email="mayor@example.com", password="secret-pass"):
        await client.post("/register", json={"email": email, "password": password})
        response = await client.post("/login", auth=(email, password))
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest.fixture
async def catalog():
    """A small catalog keyed by building name."""
    entries = [
        BuildingCreateModel(name="Shop", type="commercial", price=300, income_per_hour=10, size_x=2, size_y=2),
        BuildingCreateModel(name="Hut", type="residential", price=100, income_per_hour=3, size_x=1, size_y=1),
        BuildingCreateModel(name="Palace", type="public", price=1000, income_per_hour=0, size_x=3, size_y=3),
        BuildingCreateModel(name="Castle", type="entertainment", price=1500, income_per_hour=50, size_x=4, size_y=4),
    ]
    buildings = {}
    for entry in entries:
        building = await catalog_db.add_building(entry)
        buildings[building.name] = building
    return buildings
