# utility_mcp/core/database.py

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import monitoring

from utility_mcp.core.config import settings

logger = logging.getLogger(__name__)


class _TopologyStateListener(monitoring.TopologyListener):
    """Feeds driver topology events back into the owning manager."""

    def __init__(self, manager: "MongoConnectionManager"):
        self._manager = manager

    def opened(self, event):
        logger.debug(f"MongoDB topology opened: {event.topology_id}")

    def description_changed(self, event):
        readable = event.new_description.has_readable_server()
        self._manager._set_connected(readable)

    def closed(self, event):
        self._manager._set_connected(False)


class MongoConnectionManager:
    """Owns the motor client and the current connectivity state."""

    def __init__(self, uri: str, db_name: str):
        self._uri = uri
        self._db_name = db_name
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected and self._client is not None

    @property
    def database(self) -> AsyncIOMotorDatabase:
        if self._db is None:
            raise RuntimeError("Database not initialized. Call connect() at startup.")
        return self._db

    def _set_connected(self, value: bool) -> None:
        if value == self._connected:
            return
        self._connected = value
        if value:
            logger.info("MongoDB connected")
        else:
            logger.warning("MongoDB disconnected")

    async def connect(self) -> AsyncIOMotorDatabase:
        if self._client is not None and self._db is not None:
            logger.info("Using existing database connection")
            return self._db

        logger.info(f"Connecting to MongoDB (db={self._db_name})")
        client = AsyncIOMotorClient(
            self._uri,
            maxPoolSize=settings.MONGODB_MAX_POOL_SIZE,
            serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
            socketTimeoutMS=settings.MONGODB_SOCKET_TIMEOUT_MS,
            event_listeners=[_TopologyStateListener(self)],
        )
        db = client[self._db_name]

        try:
            await db.command("ping")
        except Exception:
            client.close()
            self._connected = False
            raise

        self._client = client
        self._db = db
        self._set_connected(True)
        logger.info("MongoDB connection OK")
        return db

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._db = None
        self._set_connected(False)
        logger.info("MongoDB connection closed")


mongo = MongoConnectionManager(settings.get_mongo_uri(), settings.get_db_name())


async def get_db() -> AsyncIOMotorDatabase:
    return mongo.database
