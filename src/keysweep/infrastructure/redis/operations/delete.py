# File: infrastructure/redis/operations/delete.py
from typing import Sequence

from redis.asyncio import Redis


async def delete_pipelined(redis: Redis, keys: Sequence[str]) -> int:
    """
    Delete ``keys`` in one non-transactional pipeline round trip.

    Each DEL reply is read individually. Replies that are errors (a MOVED
    after a slot migration, a wrong-type failure...) count as 0 and are not
    retried, and keys that no longer exist report 0 from the server.

    Raises:
        RedisError: If the pipeline as a whole could not be executed.
    """
    if not keys:
        return 0

    pipe = redis.pipeline(transaction=False)
    for key in keys:
        pipe.delete(key)
    results = await pipe.execute(raise_on_error=False)

    deleted = 0
    for result in results:
        if isinstance(result, Exception) or result is None:
            continue
        deleted += int(result)
    return deleted
