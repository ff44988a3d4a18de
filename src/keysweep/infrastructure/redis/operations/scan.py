# File: infrastructure/redis/operations/scan.py
from typing import List, Optional, Tuple

from redis.asyncio import Redis


def _decode(key) -> str:
    return key.decode() if isinstance(key, bytes) else key


async def scan_page(
    redis: Redis,
    cursor: int,
    pattern: Optional[str],
    count: Optional[int] = None,
) -> Tuple[int, List[str]]:
    """
    Issue one SCAN step against a single node.

    Args:
        redis (Redis): Client bound to exactly one node.
        cursor (int): Cursor returned by the previous step, 0 to start.
        pattern (str | None): MATCH filter, None to match every key.
        count (int | None): COUNT hint; None or 0 lets the server decide.

    Returns:
        tuple[int, list[str]]: The next cursor and the keys of this page.

    Raises:
        RedisError: If there is an issue communicating with Redis.
    """
    next_cursor, batch = await redis.scan(cursor=cursor, match=pattern or None, count=count or None)
    return int(next_cursor), [_decode(key) for key in batch]
