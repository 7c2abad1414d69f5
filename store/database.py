"""
MongoDB connection management for async operations.
Owns the motor client, creates indexes and exposes per-kind collections.
"""

import asyncio
from typing import Any, Callable, Dict, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from .models import SCHEMAS, RecordKind

logger = structlog.get_logger(__name__)


class StoreUnavailableError(RuntimeError):
    """Raised when the document store cannot be reached."""


class MongoDBManager:
    """
    Async MongoDB manager shared by the record access layer.

    The connection is established once, either explicitly at startup or
    lazily by the first ensure_connected() call. Failures are raised, never
    swallowed, so callers see a store outage on the request that hit it.
    """

    def __init__(
        self,
        connection_url: str,
        database_name: str,
        collection_names: Dict[str, str],
        connect_timeout_ms: int = 5000,
        client_factory: Optional[Callable[..., Any]] = None,
    ):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            collection_names: Mapping of record kind value to collection name
            connect_timeout_ms: Server selection timeout for the client
            client_factory: Callable building the client (defaults to AsyncIOMotorClient)
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.collection_names = {RecordKind(k): v for k, v in collection_names.items()}
        self.connect_timeout_ms = connect_timeout_ms
        self.client_factory = client_factory or AsyncIOMotorClient
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self.database is not None

    async def connect(self) -> None:
        """Establish connection to MongoDB and create indexes."""
        client = None
        try:
            client = self.client_factory(
                self.connection_url,
                serverSelectionTimeoutMS=self.connect_timeout_ms,
            )
            await client.admin.command('ping')
            database = client[self.database_name]
            await self._create_indexes(database)
        except PyMongoError as e:
            if client is not None:
                client.close()
            logger.error("Failed to connect to MongoDB", database=self.database_name, error=str(e))
            raise StoreUnavailableError(f"MongoDB unavailable: {e}") from e

        self.client = client
        self.database = database
        logger.info("Successfully connected to MongoDB", database=self.database_name)

    async def ensure_connected(self) -> None:
        """Connect if not connected yet. Safe to call before every operation."""
        if self.is_connected:
            return
        async with self._lock:
            if not self.is_connected:
                await self.connect()

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")
        self.client = None
        self.database = None

    async def _create_indexes(self, database: AsyncIOMotorDatabase) -> None:
        """Create unique and lookup indexes declared by the record schemas."""
        for kind, schema in SCHEMAS.items():
            collection = database[self.collection_names[kind]]
            for field in sorted(schema.unique_fields):
                await collection.create_index(field, unique=True)
            for field in sorted(schema.indexed_fields):
                await collection.create_index(field)
        logger.info("Successfully created MongoDB indexes")

    def collection(self, kind: RecordKind) -> AsyncIOMotorCollection:
        """Get the collection holding records of the given kind."""
        if self.database is None:
            raise StoreUnavailableError("MongoDB connection has not been established")
        return self.database[self.collection_names[RecordKind(kind)]]

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status and document counts per kind
        """
        try:
            await self.ensure_connected()
            await self.database.command("ping")
            counts = {}
            for kind in RecordKind:
                counts[f"{kind.value}_count"] = await self.collection(kind).count_documents({})
            return {"status": "healthy", **counts}
        except (StoreUnavailableError, PyMongoError) as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}
