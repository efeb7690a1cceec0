"""
Redis client for server-side login sessions
"""
import redis.asyncio as redis
from typing import Optional
import logging

from creativehub.core.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis connection manager"""

    client: Optional[redis.Redis] = None


redis_client = RedisClient()


async def connect_redis():
    """Connect to Redis"""
    logger.info(f"Connecting to Redis at {settings.REDIS_URL}")

    try:
        redis_client.client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=30,
            socket_timeout=30
        )

        await redis_client.client.ping()

        logger.info("Redis connection established")
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}")
        raise


async def disconnect_redis():
    """Close Redis connection"""
    if redis_client.client:
        await redis_client.client.close()
        logger.info("Redis connection closed")


def get_redis() -> redis.Redis:
    """Get Redis client instance"""
    return redis_client.client


class RedisKeys:
    """Redis key naming conventions"""

    @staticmethod
    def session(session_id: str) -> str:
        return f"session:{session_id}"


class RedisTTL:
    """TTL values for different data types"""

    SESSION = settings.SESSION_MAX_AGE_SECONDS  # matches the cookie lifetime
