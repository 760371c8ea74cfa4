"""Store settings, read from ``PARTITIONED_MEMORY_*`` environment variables or a ``.env`` file."""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from partitioned_memory.query.paginator import (
    CANDIDATE_MULTIPLIER,
    MAX_LOOP_ITERATIONS,
    MAX_TOTAL_ITEMS_IN_MEMORY,
    PaginationLimits,
)
from partitioned_memory.retry import RetryOptions


class StoreSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PARTITIONED_MEMORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend
    backend: Literal["memory", "redis", "sqlalchemy"] = "memory"
    page_size: int = Field(default=1000, gt=0)

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_key_prefix: str = "memory:"

    # SQLAlchemy
    database_url: str = "sqlite:///memory.db"

    # Items expire this many days after their last write (None keeps them forever)
    ttl_days: Optional[int] = None

    # Query safety limits
    max_iterations: int = Field(default=MAX_LOOP_ITERATIONS, gt=0)
    max_items_in_memory: int = Field(default=MAX_TOTAL_ITEMS_IN_MEMORY, gt=0)
    candidate_multiplier: int = Field(default=CANDIDATE_MULTIPLIER, gt=0)

    # Retry
    retry_max_attempts: int = Field(default=3, gt=0)
    retry_base_delay: float = Field(default=0.1, ge=0)
    retry_max_delay: float = Field(default=5.0, ge=0)

    # Embeddings (OpenAI); unset disables semantic reranking and indexing
    embedding_model: Optional[str] = None
    embedding_dimensions: Optional[int] = None

    @property
    def pagination_limits(self) -> PaginationLimits:
        return PaginationLimits(
            max_iterations=self.max_iterations,
            max_items_in_memory=self.max_items_in_memory,
            candidate_multiplier=self.candidate_multiplier,
        )

    @property
    def retry_options(self) -> RetryOptions:
        return RetryOptions(
            max_attempts=self.retry_max_attempts,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
        )
