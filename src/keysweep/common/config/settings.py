# File: common/config/settings.py

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Calculate base directory for consistent file paths
BASE_DIR = Path.cwd()
ENV_PATH = BASE_DIR / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=ENV_PATH,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    ENVIRONMENT: str = Field("production", description="'production' or 'development'")

    # Redis
    REDIS_NODES: str = Field("127.0.0.1:6379", description="Comma-separated host:port list")
    REDIS_PASSWORD: Optional[str] = Field(None, description="Redis password")
    REDIS_DB: int = Field(0, ge=0, description="Redis database number (ignored for clusters)")
    REDIS_CLUSTER: bool = Field(False, description="Treat REDIS_NODES as cluster seed nodes")
    REDIS_POOL_SIZE: int = Field(10, gt=0, description="Max connections per shard")
    REDIS_CONNECT_TIMEOUT: float = Field(5.0, gt=0, description="Connect timeout in seconds")
    REDIS_SOCKET_TIMEOUT: float = Field(3.0, gt=0, description="Read/write timeout in seconds")
    REDIS_CLUSTER_RETRY_ATTEMPTS: int = Field(3, ge=0, description="Retries on cluster errors during discovery")

    # Engine
    SCAN_COUNT_HINT: int = Field(0, ge=0, description="SCAN COUNT hint, 0 for the server default")
    DELETE_BATCH_SIZE: int = Field(500, gt=0, description="Deletes per pipelined round trip")
    KEY_QUEUE_SIZE: int = Field(1000, gt=0, description="Capacity of the scan-to-delete key queue")

    # Logging
    LOG_LEVEL: Optional[str] = Field(None, description="Overrides the level derived from ENVIRONMENT")
    LOG_FILE: Optional[Path] = Field(None, description="Also write logs to this file")

    # Sentry
    SENTRY_DSN: Optional[str] = Field(None, description="Sentry DSN, error reporting is off when unset")
    SENTRY_TRACES_SAMPLE_RATE: float = Field(0.0, ge=0, le=1, description="Sentry traces sample rate")

    @field_validator("REDIS_NODES")
    @classmethod
    def strip_nodes(cls, value: str) -> str:
        return value.strip()

    @property
    def node_list(self) -> List[str]:
        return [node.strip() for node in self.REDIS_NODES.split(",") if node.strip()]

    @property
    def log_level(self) -> str:
        if self.LOG_LEVEL:
            return self.LOG_LEVEL.upper()
        return "DEBUG" if self.ENVIRONMENT == "development" else "INFO"

    def with_overrides(self, **values) -> "Settings":
        """Return a validated copy with the non-None values replaced."""
        data = self.model_dump()
        data.update({key: value for key, value in values.items() if value is not None})
        return Settings(**data)


@lru_cache
def get_settings() -> Settings:
    """Settings built from the environment on first use, not at import."""
    return Settings()
