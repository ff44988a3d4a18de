# File: application/engine.py
import asyncio
from typing import Dict, Optional

from redis.exceptions import RedisError

from keysweep.common.config.settings import Settings, get_settings
from keysweep.common.exceptions.base_exception import InvalidPatternException
from keysweep.common.exceptions.error_handlers import report_error
from keysweep.common.logging.logger import ContextLogger, default_logger
from keysweep.domain.keyspace.entities.shard_entity import Shard, ShardResult, ShardStatus
from keysweep.domain.keyspace.services.delete_batcher import DeleteBatcher
from keysweep.domain.keyspace.services.key_queue import KeyQueue
from keysweep.domain.keyspace.services.key_scanner import KeyScanner
from keysweep.domain.keyspace.services.result_aggregator import ResultAggregator
from keysweep.domain.keyspace.services.shard_enumerator import ShardEnumerator
from keysweep.infrastructure.redis.operations.dbsize import dbsize
from keysweep.infrastructure.redis.redis_client import Topology, connect


def _require_pattern(pattern: Optional[str]) -> str:
    pattern = (pattern or "").strip()
    if not pattern:
        raise InvalidPatternException("Clear needs a non-empty pattern; it would otherwise wipe the database")
    return pattern


def _status(error: Optional[BaseException], stopped: bool, progress: int) -> ShardStatus:
    if error is None:
        return ShardStatus.PARTIAL if stopped else ShardStatus.OK
    return ShardStatus.PARTIAL if progress else ShardStatus.FAILED


class Engine:
    """
    Count and clear keys matching a glob pattern on every master of a topology.

    ``count`` and ``clear`` return ``{shard identity: count}``; failures on a
    shard or a delete batch are logged and only shrink that shard's number.
    """

    def __init__(self, topology: Topology, config: Optional[Settings] = None, log: Optional[ContextLogger] = None):
        self.topology = topology
        self.config = config or get_settings()
        self.log = log or default_logger
        self.enumerator = ShardEnumerator(topology.shards, log=self.log)
        self._stop = asyncio.Event()

    @classmethod
    async def connect(cls, config: Optional[Settings] = None, log: Optional[ContextLogger] = None) -> "Engine":
        config = config or get_settings()
        topology = await connect(config, log=log)
        return cls(topology, config=config, log=log)

    @property
    def shards(self):
        return self.topology.shards

    def stop(self):
        """Ask the running operation to end its scans after their current step.

        The request is dropped once that operation returns, so the next
        count or clear runs to completion.
        """
        self._stop.set()

    async def count(self, pattern: Optional[str]) -> Dict[str, int]:
        report = await self.count_report(pattern)
        return report.as_mapping()

    async def clear(self, pattern: Optional[str]) -> Optional[Dict[str, int]]:
        report = await self.clear_report(pattern)
        if report is None:
            return None
        return report.as_mapping()

    async def count_report(self, pattern: Optional[str]) -> ResultAggregator:
        pattern = (pattern or "").strip()
        self.log.info("Count started", extra={"pattern": pattern, "shards": len(self.shards)})
        try:
            report = await self.enumerator.run("count", lambda shard: self._count_shard(shard, pattern))
        finally:
            self._stop.clear()
        self.log.info("Count finished", extra={"pattern": pattern, "total": report.total()})
        return report

    async def clear_report(self, pattern: Optional[str]) -> Optional[ResultAggregator]:
        try:
            pattern = _require_pattern(pattern)
        except InvalidPatternException as e:
            self.log.error("Refusing to clear with an empty pattern", extra={"error": e.detail})
            return None
        self.log.info("Clear started", extra={"pattern": pattern, "shards": len(self.shards)})
        try:
            report = await self.enumerator.run("clear", lambda shard: self._clear_shard(shard, pattern))
        finally:
            self._stop.clear()
        self.log.info("Clear finished", extra={"pattern": pattern, "total": report.total()})
        return report

    async def close(self):
        await self.topology.close()

    async def _count_shard(self, shard: Shard, pattern: str) -> ShardResult:
        if not pattern:
            # Matching everything: DBSIZE answers without walking the keyspace
            try:
                size = await dbsize(shard.client)
            except (RedisError, OSError) as e:
                report_error("Redis DBSIZE failed", exc=e, error_type="dbsize", log=self.log,
                             context={"shard": shard.identity})
                return ShardResult(shard=shard.identity, status=ShardStatus.FAILED, error=str(e))
            return ShardResult(shard=shard.identity, matched=size)

        scanner = self._scanner(shard, pattern)
        async for _ in scanner:
            pass
        return ShardResult(
            shard=shard.identity,
            matched=scanner.matched,
            status=_status(scanner.error, scanner.stopped, scanner.matched),
            error=str(scanner.error) if scanner.error else None,
        )

    async def _clear_shard(self, shard: Shard, pattern: str) -> ShardResult:
        queue = KeyQueue(self.config.KEY_QUEUE_SIZE)
        scanner = self._scanner(shard, pattern)
        batcher = DeleteBatcher(shard, self.config.DELETE_BATCH_SIZE, log=self.log)

        async def produce():
            try:
                async for keys in scanner:
                    for key in keys:
                        await queue.put(key)
            finally:
                queue.close()

        tasks = [asyncio.create_task(produce()), asyncio.create_task(batcher.consume(queue))]
        aborted: Optional[Exception] = None
        try:
            await asyncio.gather(*tasks)
        except Exception as e:
            aborted = e
            report_error("Shard clear aborted", exc=e, log=self.log,
                         context={"shard": shard.identity, "deleted": batcher.deleted})
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        error = aborted or scanner.error or batcher.error
        return ShardResult(
            shard=shard.identity,
            matched=scanner.matched,
            deleted=batcher.deleted,
            status=_status(error, scanner.stopped, scanner.matched),
            error=str(error) if error else None,
        )

    def _scanner(self, shard: Shard, pattern: str) -> KeyScanner:
        return KeyScanner(shard, pattern, self.config.SCAN_COUNT_HINT, stop=self._stop, log=self.log)
