# File: domain/keyspace/services/result_aggregator.py
from typing import Dict, List

from keysweep.domain.keyspace.entities.shard_entity import ShardResult, ShardStatus


class ResultAggregator:
    """Collects exactly one ShardResult per shard."""

    def __init__(self, operation: str):
        self.operation = operation
        self._results: Dict[str, ShardResult] = {}

    def add(self, result: ShardResult):
        # Shard tasks finish on the same event loop, so a plain dict is enough
        if result.shard in self._results:
            raise ValueError(f"Duplicate result for shard {result.shard}")
        self._results[result.shard] = result

    def __len__(self) -> int:
        return len(self._results)

    def __contains__(self, shard: str) -> bool:
        return shard in self._results

    def __getitem__(self, shard: str) -> ShardResult:
        return self._results[shard]

    @property
    def results(self) -> List[ShardResult]:
        return list(self._results.values())

    def as_mapping(self) -> Dict[str, int]:
        """shard -> matched count for ``count``, shard -> deleted count for ``clear``."""
        if self.operation == "clear":
            return {shard: result.deleted for shard, result in self._results.items()}
        return {shard: result.matched for shard, result in self._results.items()}

    def total(self) -> int:
        return sum(self.as_mapping().values())

    def degraded(self) -> List[ShardResult]:
        return [result for result in self._results.values() if result.status != ShardStatus.OK]
