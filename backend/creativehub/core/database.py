"""
MongoDB database connection and utilities
"""
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import IndexModel, ASCENDING, DESCENDING
from typing import Optional
import logging

from creativehub.core.config import settings

logger = logging.getLogger(__name__)


class Database:
    """MongoDB connection manager"""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None


database = Database()


async def connect_db():
    """Connect to MongoDB and create indexes"""
    logger.info(f"Connecting to MongoDB at {settings.MONGO_URL}")

    try:
        database.client = AsyncIOMotorClient(
            settings.MONGO_URL,
            serverSelectionTimeoutMS=30000,
            connectTimeoutMS=30000,
            socketTimeoutMS=30000
        )
        database.db = database.client[settings.MONGO_DB]

        await database.client.admin.command('ping')
        logger.info("MongoDB connection successful")

        await create_indexes()

        logger.info("MongoDB connection established")
    except Exception as e:
        logger.error(f"Failed to connect to MongoDB: {e}")
        raise


async def disconnect_db():
    """Close MongoDB connection"""
    if database.client:
        database.client.close()
        logger.info("MongoDB connection closed")


async def create_indexes():
    """Create database indexes for the asset listing and review queues"""
    db = database.db

    # Emails are stored lower-cased, so a plain unique index is case-insensitive
    await db.users.create_indexes([
        IndexModel([("email", ASCENDING)], unique=True),
    ])

    await db.assets.create_indexes([
        IndexModel([("drive_file_id", ASCENDING)]),
        IndexModel([("uploaded_by", ASCENDING)]),
        IndexModel([("uploader_role", ASCENDING)]),
        IndexModel([("created_at", DESCENDING)]),
        IndexModel([("review.status", ASCENDING)]),
        IndexModel([("approval.status", ASCENDING)]),
    ])

    logger.info("Database indexes created")


def get_db() -> AsyncIOMotorDatabase:
    """Get database instance"""
    return database.db


def get_collection(name: str):
    """Get a specific collection"""
    return database.db[name]
