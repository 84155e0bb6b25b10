"""Database connectivity layer for the support assistant."""

from __future__ import annotations

import logging
from typing import Optional

import redis.asyncio as redis
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from supportbot.core.config import settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Lazily establishes connections to the configured datastores."""

    def __init__(self) -> None:
        self.mongodb: Optional[AsyncIOMotorClient] = None
        self.redis: Optional[redis.Redis] = None

    @property
    def database(self) -> AsyncIOMotorDatabase:
        if self.mongodb is None:
            raise RuntimeError("MongoDB client not initialized")
        return self.mongodb[settings.MONGODB_DATABASE]

    async def initialize(self) -> None:
        """Connect to the backing services required by the active configuration."""

        logger.info("Initializing database manager (store backend=%s)", settings.STORE_BACKEND)

        if settings.STORE_BACKEND == "mongo":
            self.mongodb = AsyncIOMotorClient(str(settings.MONGODB_URL))

        # Rate limiting is disabled when no Redis URL is configured.
        if settings.REDIS_URL:
            self.redis = redis.from_url(str(settings.REDIS_URL), decode_responses=True)

        logger.info("Database manager initialized")

    async def close(self) -> None:
        """Tear down connections gracefully."""

        logger.info("Closing database connections")

        if self.redis is not None:
            await self.redis.close()
            self.redis = None

        if self.mongodb is not None:
            self.mongodb.close()
            self.mongodb = None


# Singleton instance used by the application container
database_manager = DatabaseManager()
