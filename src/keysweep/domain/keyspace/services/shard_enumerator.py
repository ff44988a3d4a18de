# File: domain/keyspace/services/shard_enumerator.py
import asyncio
from typing import Awaitable, Callable, List, Optional

from keysweep.common.exceptions.error_handlers import report_error
from keysweep.common.logging.logger import ContextLogger, default_logger
from keysweep.domain.keyspace.entities.shard_entity import Shard, ShardResult, ShardStatus
from keysweep.domain.keyspace.services.result_aggregator import ResultAggregator

ShardUnit = Callable[[Shard], Awaitable[ShardResult]]


class ShardEnumerator:
    """Runs one unit of work per shard, all shards concurrently, one result each."""

    def __init__(self, shards: List[Shard], log: Optional[ContextLogger] = None):
        self.shards = list(shards)
        self.log = log or default_logger

    async def run(self, operation: str, unit: ShardUnit) -> ResultAggregator:
        aggregator = ResultAggregator(operation)
        await asyncio.gather(*(self._run_shard(shard, unit, aggregator) for shard in self.shards))
        return aggregator

    async def _run_shard(self, shard: Shard, unit: ShardUnit, aggregator: ResultAggregator):
        self.log.info("Shard started", extra={"shard": shard.identity})
        try:
            result = await unit(shard)
        except Exception as e:
            report_error("Shard unit failed", exc=e, log=self.log, context={"shard": shard.identity})
            result = ShardResult(shard=shard.identity, status=ShardStatus.FAILED, error=str(e))
        aggregator.add(result)
        self.log.info("Shard finished", extra=result.model_dump(exclude_none=True, mode="json"))
