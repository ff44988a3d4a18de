# File: infrastructure/redis/operations/dbsize.py

from redis.asyncio import Redis


async def dbsize(redis: Redis) -> int:
    """Number of keys in the node's selected database."""
    return int(await redis.dbsize())
