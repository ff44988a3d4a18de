# File: domain/keyspace/services/delete_batcher.py
from typing import AsyncIterable, List, Optional

from redis.exceptions import RedisError

from keysweep.common.exceptions.error_handlers import report_error
from keysweep.common.logging.logger import ContextLogger, default_logger
from keysweep.domain.keyspace.entities.shard_entity import Shard
from keysweep.infrastructure.redis.operations.delete import delete_pipelined

DELETE_BATCH_SIZE = 500


class DeleteBatcher:
    """
    Turns a stream of keys into fixed-size pipelined DEL round trips on one shard.

    Keys land in a reusable slot array at ``submitted % batch_size``. Every
    time ``submitted`` reaches a multiple of ``batch_size`` the full array is
    flushed; when the stream ends the remaining partial batch is flushed too.
    A batch whose pipeline fails is logged and counts 0; later batches still
    run. ``deleted`` counts only keys the server reports as removed.
    """

    def __init__(self, shard: Shard, batch_size: int = DELETE_BATCH_SIZE, log: Optional[ContextLogger] = None):
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.shard = shard
        self.batch_size = batch_size
        self.log = log or default_logger

        self._slots: List[Optional[str]] = [None] * batch_size
        self.submitted = 0
        self.deleted = 0
        self.batches = 0
        self.failed_batches = 0
        self.error: Optional[BaseException] = None

    async def consume(self, keys: AsyncIterable[str]) -> int:
        async for key in keys:
            self._slots[self.submitted % self.batch_size] = key
            self.submitted += 1
            if self.submitted % self.batch_size == 0:
                await self._flush(self.batch_size)

        remainder = self.submitted % self.batch_size
        if remainder:
            await self._flush(remainder)

        self.log.info("Deletion finished", extra={
            "shard": self.shard.identity,
            "submitted": self.submitted,
            "deleted": self.deleted,
            "batches": self.batches,
            "failed_batches": self.failed_batches,
        })
        return self.deleted

    async def _flush(self, size: int):
        keys = self._slots[:size]
        self.batches += 1
        try:
            removed = await delete_pipelined(self.shard.client, keys)
        except (RedisError, OSError) as e:
            self.failed_batches += 1
            self.error = e
            report_error("Redis pipelined DEL failed", exc=e, error_type="delete", log=self.log, context={
                "shard": self.shard.identity,
                "batch": self.batches,
                "size": size,
            })
        else:
            self.deleted += removed
            self.log.debug("Batch deleted", extra={
                "shard": self.shard.identity,
                "batch": self.batches,
                "size": size,
                "deleted": removed,
            })
        finally:
            for index in range(size):
                self._slots[index] = None
