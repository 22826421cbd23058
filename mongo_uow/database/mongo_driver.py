from typing import Optional
from pymongo import AsyncMongoClient
from mongo_uow.logging.logger import get_logger
from .base import BaseDatabaseDriver

logger = get_logger("mongo_driver")

class MongoDriver(BaseDatabaseDriver):
    def __init__(self, url: str, default_db: str, client: Optional[AsyncMongoClient] = None):
        self.url = url
        self.default_db = default_db
        # AsyncMongoClient connects lazily on first operation
        self.client = client or AsyncMongoClient(url, tz_aware=True)

    async def connect(self):
        """Ping the server to verify the connection."""
        await self.client.admin.command("ping")
        logger.info(f"Connected to MongoDB database '{self.default_db}'")

    async def disconnect(self):
        """Close the client and its connection pool."""
        if self.client:
            await self.client.close()

    def get_client(self) -> AsyncMongoClient:
        return self.client

    def get_database(self, name: Optional[str] = None):
        return self.client.get_database(name or self.default_db)

    def get_collection(self, name: str, db_name: Optional[str] = None):
        return self.get_database(db_name).get_collection(name)
