"""MongoDB connection module."""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from singleton import Singleton

logger = logging.getLogger(__name__)


class DatabaseManager(metaclass=Singleton):
    """Manages MongoDB connections."""

    def __init__(
        self,
        mongo_uri: str,
        mongo_database: str,
        replica_set: str | None = None,
    ) -> None:
        """
        Initialize the database manager.

        Args:
            mongo_uri: MongoDB connection URI
            mongo_database: Database holding every collection
            replica_set: Optional replica set name

        """
        self.async_client: AsyncIOMotorClient | None = None
        self.async_db: AsyncIOMotorDatabase | None = None
        self.mongo_uri = mongo_uri
        self.mongo_database = mongo_database
        self.replica_set = replica_set

    async def aconnect(self) -> None:
        """Initialize database connection."""
        kwargs: dict[str, object] = {"tz_aware": True}
        if self.replica_set:
            kwargs["replicaSet"] = self.replica_set
        self.async_client = AsyncIOMotorClient(self.mongo_uri, **kwargs)
        self.async_db = self.async_client[self.mongo_database]
        await self.async_client.admin.command("ping")
        logger.info("Connected to MongoDB database %s", self.mongo_database)

    async def ainit_indexes(self) -> None:
        """Create the indexes of every registered collection."""
        from .indexes import ensure_indexes

        await ensure_indexes(self.get_db())

    async def adisconnect(self) -> None:
        """Close database connection."""
        if self.async_client:
            self.async_client.close()
        self.async_client = None
        self.async_db = None

    def get_db(self) -> AsyncIOMotorDatabase:
        """Get the async database handle."""
        if self.async_db is None:
            raise RuntimeError("Database not connected")
        return self.async_db
