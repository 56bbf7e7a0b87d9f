from types import SimpleNamespace

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from utility_mcp.core import database
from utility_mcp.core.config import Settings
from utility_mcp.core.database import MongoConnectionManager, _TopologyStateListener


def _changed(readable):
    return SimpleNamespace(new_description=SimpleNamespace(has_readable_server=lambda: readable))


class FakeMotorDB:
    def __init__(self, fail):
        self._fail = fail

    async def command(self, name):
        if self._fail:
            raise ServerSelectionTimeoutError("no servers")
        return {"ok": 1}


class FakeMotorClient:
    instances = []

    def __init__(self, uri, fail=False, **kwargs):
        self.uri = uri
        self.kwargs = kwargs
        self.closed = False
        self._db = FakeMotorDB(fail)
        FakeMotorClient.instances.append(self)

    def __getitem__(self, name):
        return self._db

    def close(self):
        self.closed = True


def test_database_requires_connect():
    manager = MongoConnectionManager("mongodb://localhost:27017", "energy_meters_db")
    assert manager.is_connected is False
    with pytest.raises(RuntimeError):
        manager.database


def test_topology_events_drive_connectivity():
    manager = MongoConnectionManager("mongodb://localhost:27017", "energy_meters_db")
    manager._client = object()
    listener = _TopologyStateListener(manager)

    listener.description_changed(_changed(True))
    assert manager.is_connected is True

    listener.description_changed(_changed(False))
    assert manager.is_connected is False

    listener.description_changed(_changed(True))
    listener.closed(SimpleNamespace())
    assert manager.is_connected is False


@pytest.mark.asyncio
async def test_connect_and_close(monkeypatch):
    monkeypatch.setattr(database, "AsyncIOMotorClient", FakeMotorClient)
    manager = MongoConnectionManager("mongodb://localhost:27017", "energy_meters_db")

    db = await manager.connect()
    assert manager.is_connected is True
    assert manager.database is db
    assert await manager.connect() is db

    client = FakeMotorClient.instances[-1]
    assert client.kwargs["maxPoolSize"] == 20
    assert isinstance(client.kwargs["event_listeners"][0], _TopologyStateListener)

    await manager.close()
    assert client.closed is True
    assert manager.is_connected is False


@pytest.mark.asyncio
async def test_failed_connect_raises_and_stays_disconnected(monkeypatch):
    monkeypatch.setattr(
        database, "AsyncIOMotorClient", lambda uri, **kw: FakeMotorClient(uri, fail=True, **kw)
    )
    manager = MongoConnectionManager("mongodb://localhost:27017", "energy_meters_db")

    with pytest.raises(ServerSelectionTimeoutError):
        await manager.connect()
    assert manager.is_connected is False
    assert FakeMotorClient.instances[-1].closed is True
    with pytest.raises(RuntimeError):
        manager.database


def test_settings_db_name_from_uri():
    assert Settings(MONGODB_URI="mongodb://db.local:27017/meters?retryWrites=true").get_db_name() == "meters"
    assert Settings(MONGODB_URI="mongodb://db.local:27017", MONGODB_DB="fallback").get_db_name() == "fallback"
    assert Settings(MONGODB_URI="mongodb://db.local:27017/").get_db_name() == "energy_meters_db"
