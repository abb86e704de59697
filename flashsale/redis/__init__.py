import logging
from typing import AsyncGenerator
from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError
from flashsale.core.config import settings

logger = logging.getLogger(__name__)

# decode_responses: sale records, counters and markers are all read back as str
redis_pool = ConnectionPool.from_url(
    settings.REDIS_URL,
    decode_responses=True,
    socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
    socket_connect_timeout=settings.REDIS_SOCKET_CONNECT_TIMEOUT,
    max_connections=settings.REDIS_MAX_CONNECTIONS,
)
redis_client = Redis(connection_pool=redis_pool)


async def get_redis() -> AsyncGenerator[Redis, None]:
    """Request scoped handle on the shared sale store client."""
    yield redis_client


async def ping_redis(redis: Redis) -> bool:
    try:
        return bool(await redis.ping())
    except RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        return False


async def close_redis():
    await redis_client.aclose()
    await redis_pool.disconnect()
    logger.info("Redis connection pool closed")
