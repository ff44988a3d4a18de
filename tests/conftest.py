"""Shared pytest fixtures for keysweep tests.

Provides an in-memory stand-in for one Redis node with SCAN cursor paging,
DBSIZE and non-transactional pipelines, plus failure injection.
"""

import fnmatch
import logging
from typing import Callable, Iterable, List, Optional, Set

import pytest
from redis.exceptions import ConnectionError, ResponseError

from keysweep.common.config.settings import Settings
from keysweep.common.logging.logger import ContextLogger, configure_logging
from keysweep.domain.keyspace.entities.shard_entity import Shard
from keysweep.infrastructure.redis.redis_client import Topology


class FakePipeline:
    def __init__(self, redis: "FakeRedis"):
        self.redis = redis
        self.keys: List[str] = []

    def delete(self, key: str) -> "FakePipeline":
        self.keys.append(key)
        return self

    async def execute(self, raise_on_error: bool = True):
        redis = self.redis
        index = redis.pipeline_executions
        redis.pipeline_executions += 1
        redis.pipeline_sizes.append(len(self.keys))
        if redis.before_execute is not None:
            redis.before_execute(redis, list(self.keys))
        if index in redis.fail_batches:
            raise ConnectionError(f"pipeline {index} dropped")

        results = []
        for key in self.keys:
            if key in redis.error_keys:
                results.append(ResponseError("MOVED 1234 10.0.0.2:6379"))
            else:
                results.append(1 if redis.store.pop(key, None) is not None else 0)
        self.keys = []
        return results


class FakeRedis:
    """
    Cursor semantics follow SCAN's guarantee: every key present for the whole
    scan is returned. Keys keep their slot after deletion, so the cursor is
    stable while the scan's own deletes run concurrently.
    """

    def __init__(
        self,
        keys: Iterable[str] = (),
        page_size: int = 10,
        fail_scan_at: Optional[int] = None,
        fail_batches: Iterable[int] = (),
        error_keys: Iterable[str] = (),
    ):
        self.slots: List[str] = []
        self.store = {}
        for key in keys:
            self.set(key)
        self.page_size = page_size
        self.fail_scan_at = fail_scan_at
        self.fail_batches: Set[int] = set(fail_batches)
        self.error_keys: Set[str] = set(error_keys)
        self.before_execute: Optional[Callable[["FakeRedis", List[str]], None]] = None

        self.scan_calls = 0
        self.dbsize_calls = 0
        self.pipeline_executions = 0
        self.pipeline_sizes: List[int] = []
        self.pinged = 0
        self.closed = 0
        self.ping_error: Optional[Exception] = None

    def set(self, key: str):
        if key not in self.store:
            self.slots.append(key)
        self.store[key] = "1"

    async def scan(self, cursor=0, match=None, count=None):
        step = self.scan_calls
        self.scan_calls += 1
        if self.fail_scan_at is not None and step >= self.fail_scan_at:
            raise ConnectionError("Connection reset by peer")

        page = count or self.page_size
        window = self.slots[cursor:cursor + page]
        keys = [
            key for key in window
            if key in self.store and (match is None or fnmatch.fnmatchcase(key, match))
        ]
        next_cursor = cursor + page
        if next_cursor >= len(self.slots):
            next_cursor = 0
        return next_cursor, keys

    async def dbsize(self):
        self.dbsize_calls += 1
        return len(self.store)

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def ping(self):
        self.pinged += 1
        if self.ping_error is not None:
            raise self.ping_error
        return True

    async def aclose(self):
        self.closed += 1


def make_shard(identity: str, redis: FakeRedis) -> Shard:
    return Shard(identity=identity, client=redis)


@pytest.fixture
def config() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def test_log() -> ContextLogger:
    logger = logging.getLogger("keysweep_test")
    logger.setLevel(logging.DEBUG)
    return ContextLogger(logger)


@pytest.fixture
def make_topology(test_log):
    def _make(*redises: FakeRedis) -> Topology:
        shards = [make_shard(f"10.0.0.{i + 1}:6379", redis) for i, redis in enumerate(redises)]
        return Topology(shards, log=test_log)
    return _make


@pytest.fixture
def restore_logging():
    yield
    configure_logging()
