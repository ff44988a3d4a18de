# File: domain/keyspace/services/key_scanner.py
import asyncio
from typing import AsyncIterator, List, Optional

from redis.exceptions import RedisError

from keysweep.common.exceptions.error_handlers import report_error
from keysweep.common.logging.logger import ContextLogger, default_logger
from keysweep.domain.keyspace.entities.shard_entity import ScanCursor, Shard
from keysweep.infrastructure.redis.operations.scan import scan_page


class KeyScanner:
    """
    Cursor-driven SCAN over one shard, exposed as a one-shot async stream of batches.

    The scan ends when the server hands back cursor 0 after at least one
    step, or when ``stop`` is set between steps. An empty page is not the
    end. A failed step is logged and ends the stream; whatever was already
    yielded stands, and ``error`` holds the failure.
    """

    def __init__(
        self,
        shard: Shard,
        pattern: Optional[str],
        count_hint: int = 0,
        stop: Optional[asyncio.Event] = None,
        log: Optional[ContextLogger] = None,
    ):
        self.shard = shard
        self.pattern = pattern or None
        self.count_hint = count_hint
        self.stop = stop
        self.log = log or default_logger

        self.cursor = ScanCursor(pattern=self.pattern)
        self.matched = 0
        self.error: Optional[BaseException] = None
        self.stopped = False
        self._started = False

    def __aiter__(self) -> AsyncIterator[List[str]]:
        if self._started:
            raise RuntimeError(f"Scan of {self.shard.identity} has already been consumed")
        self._started = True
        return self._batches()

    async def _batches(self) -> AsyncIterator[List[str]]:
        self.log.info("Scan started", extra={"shard": self.shard.identity, "pattern": self.pattern})
        while not self.cursor.exhausted:
            if self.stop is not None and self.stop.is_set():
                self.stopped = True
                self.log.warning("Scan stopped", extra={"shard": self.shard.identity, "matched": self.matched})
                break
            try:
                next_cursor, keys = await scan_page(
                    self.shard.client, self.cursor.value, self.pattern, self.count_hint
                )
            except (RedisError, OSError) as e:
                self.error = e
                report_error("Redis SCAN failed", exc=e, error_type="scan", log=self.log, context={
                    "shard": self.shard.identity,
                    "pattern": self.pattern,
                    "cursor": self.cursor.value,
                    "matched": self.matched,
                })
                break

            self.cursor = self.cursor.advance(next_cursor)
            self.matched += len(keys)
            yield keys

        self.log.info("Scan finished", extra={
            "shard": self.shard.identity,
            "matched": self.matched,
            "steps": self.cursor.steps,
        })
