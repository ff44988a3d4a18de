"""Tests for DeleteBatcher batch assembly and flushing."""

import pytest

from keysweep.domain.keyspace.services.delete_batcher import DeleteBatcher
from tests.conftest import FakeRedis, make_shard


async def stream(keys):
    for key in keys:
        yield key


def keyset(n, prefix="k"):
    return [f"{prefix}:{i}" for i in range(n)]


class TestDeleteBatcher:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("n, batches, sizes", [
        (500, 1, [500]),
        (501, 2, [500, 1]),
        (1000, 2, [500, 500]),
        (1234, 3, [500, 500, 234]),
    ])
    async def test_batch_boundaries(self, n, batches, sizes, test_log) -> None:
        redis = FakeRedis(keyset(n))
        batcher = DeleteBatcher(make_shard("a:1", redis), log=test_log)

        deleted = await batcher.consume(stream(keyset(n)))

        assert deleted == n
        assert redis.pipeline_executions == batches
        assert redis.pipeline_sizes == sizes
        assert batcher.batches == batches
        assert not redis.store

    @pytest.mark.asyncio
    async def test_no_keys_no_round_trip(self, test_log) -> None:
        redis = FakeRedis()
        batcher = DeleteBatcher(make_shard("a:1", redis), log=test_log)

        assert await batcher.consume(stream([])) == 0
        assert redis.pipeline_executions == 0

    @pytest.mark.asyncio
    async def test_missing_keys_count_zero(self, test_log) -> None:
        redis = FakeRedis(keyset(3))
        batcher = DeleteBatcher(make_shard("a:1", redis), log=test_log)

        deleted = await batcher.consume(stream(keyset(3) + ["gone:1", "gone:2"]))

        assert deleted == 3
        assert batcher.submitted == 5

    @pytest.mark.asyncio
    async def test_failed_batch_does_not_stop_later_batches(self, test_log, caplog) -> None:
        redis = FakeRedis(keyset(1200), fail_batches=[0])
        batcher = DeleteBatcher(make_shard("10.0.0.1:6379", redis), log=test_log)

        deleted = await batcher.consume(stream(keyset(1200)))

        assert deleted == 700
        assert batcher.batches == 3
        assert batcher.failed_batches == 1
        assert batcher.error is not None
        assert len(redis.store) == 500
        failures = [r for r in caplog.records if r.getMessage() == "Redis pipelined DEL failed"]
        assert failures[0].context["shard"] == "10.0.0.1:6379"
        assert failures[0].context["batch"] == 1

    @pytest.mark.asyncio
    async def test_error_replies_count_zero(self, test_log) -> None:
        redis = FakeRedis(keyset(4), error_keys=["k:1"])
        batcher = DeleteBatcher(make_shard("a:1", redis), log=test_log)

        assert await batcher.consume(stream(keyset(4))) == 3
        assert batcher.failed_batches == 0

    @pytest.mark.asyncio
    async def test_custom_batch_size(self, test_log) -> None:
        redis = FakeRedis(keyset(7))
        batcher = DeleteBatcher(make_shard("a:1", redis), batch_size=3, log=test_log)

        assert await batcher.consume(stream(keyset(7))) == 7
        assert redis.pipeline_sizes == [3, 3, 1]

    def test_rejects_non_positive_batch_size(self) -> None:
        with pytest.raises(ValueError):
            DeleteBatcher(make_shard("a:1", FakeRedis()), batch_size=0)
