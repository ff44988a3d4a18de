# File: domain/keyspace/entities/shard_entity.py
from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field


class ShardRole(str, Enum):
    MASTER = "master"


class ShardStatus(str, Enum):
    OK = "ok"
    PARTIAL = "partial"
    FAILED = "failed"


class Shard(BaseModel):
    """One writable master node, borrowed from the topology for the engine's lifetime."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    identity: str = Field(..., description="host:port of the node")
    role: ShardRole = Field(default=ShardRole.MASTER, description="Always a master for this engine")
    client: Any = Field(..., exclude=True, repr=False, description="Per-shard redis.asyncio command surface")


class ScanCursor(BaseModel):
    """Resumption state of one pattern scan against one shard."""

    model_config = ConfigDict(frozen=True)

    INITIAL: ClassVar[int] = 0

    value: int = Field(default=0, description="Opaque cursor returned by SCAN")
    pattern: Optional[str] = Field(default=None, description="MATCH pattern, None matches everything")
    steps: int = Field(default=0, description="Number of SCAN round trips already issued")

    def advance(self, value: int) -> "ScanCursor":
        return ScanCursor(value=int(value), pattern=self.pattern, steps=self.steps + 1)

    @property
    def exhausted(self) -> bool:
        # The initial value only means "done" once at least one step ran
        return self.steps > 0 and self.value == self.INITIAL


class ShardResult(BaseModel):
    """Outcome of one shard's unit of work."""

    shard: str = Field(..., description="Shard identity")
    matched: int = Field(default=0, description="Keys matched by the scan (or DBSIZE)")
    deleted: int = Field(default=0, description="Keys actually removed")
    status: ShardStatus = Field(default=ShardStatus.OK)
    error: Optional[str] = Field(default=None, description="Last error seen on this shard")
