"""Build backends and stores from settings."""

import logging
from typing import Optional

from partitioned_memory.config import StoreSettings
from partitioned_memory.embeddings.protocol import TextEmbedding
from partitioned_memory.storage.memory import InMemoryBackend
from partitioned_memory.storage.protocols import MemoryBackend
from partitioned_memory.store import MemoryStore

logger = logging.getLogger(__name__)


def create_backend(settings: StoreSettings) -> MemoryBackend:
    """
    Create the backend selected by ``settings.backend``.

    Raises:
        ImportError: If the optional dependency of the selected backend is missing
    """
    if settings.backend == "memory":
        return InMemoryBackend(page_size=settings.page_size)

    if settings.backend == "redis":
        from partitioned_memory.storage.redis import RedisBackend

        return RedisBackend(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            key_prefix=settings.redis_key_prefix,
            page_size=settings.page_size,
        )

    if settings.backend == "sqlalchemy":
        try:
            from sqlalchemy import create_engine

            from partitioned_memory.storage.sqlalchemy import SQLAlchemyBackend
        except ImportError as e:
            raise ImportError(
                "sqlalchemy is required for the sqlalchemy backend. "
                "Install with: pip install partitioned-memory[sqlalchemy]"
            ) from e

        backend = SQLAlchemyBackend(
            create_engine(settings.database_url, pool_pre_ping=True),
            page_size=settings.page_size,
        )
        backend.create_tables()
        return backend

    raise ValueError(f"Unknown backend: {settings.backend}")


def create_store(
    settings: Optional[StoreSettings] = None,
    embedding: Optional[TextEmbedding] = None,
) -> MemoryStore:
    """
    Create a MemoryStore from settings (read from the environment when omitted).

    An explicit ``embedding`` wins; otherwise an OpenAI embedder is created
    when ``settings.embedding_model`` is set.
    """
    settings = settings or StoreSettings()

    if embedding is None and settings.embedding_model:
        from partitioned_memory.embeddings.openai_embedding import OpenAIEmbedding

        embedding = OpenAIEmbedding(
            model=settings.embedding_model, dimensions=settings.embedding_dimensions
        )

    logger.info(f"Creating store with {settings.backend} backend")
    return MemoryStore(
        create_backend(settings),
        embedding=embedding,
        ttl_days=settings.ttl_days,
        limits=settings.pagination_limits,
        retry_options=settings.retry_options,
    )
