"""Database connection for the bug persistence service."""

import os
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

# Global database instance
_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


async def connect_db() -> AsyncIOMotorDatabase:
    """Connect to MongoDB and return the database."""
    global _client, _db

    if _db is not None:
        return _db

    mongo_url = os.getenv("MONGO_URL", "mongodb://localhost:27017")
    db_name = os.getenv("MONGO_DB", "bug_tracker")

    _client = AsyncIOMotorClient(mongo_url, tz_aware=True)
    _db = _client[db_name]

    # Create indexes
    await _db.bugs.create_index([("status", 1), ("createdAt", 1)])

    return _db


async def get_db() -> AsyncIOMotorDatabase:
    """Get the database instance."""
    global _db
    if _db is None:
        return await connect_db()
    return _db


async def close_db():
    """Close the database connection."""
    global _client, _db
    if _client:
        _client.close()
        _client = None
        _db = None
