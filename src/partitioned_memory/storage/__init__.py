"""
Storage backends for memory records.

Provides the backend access protocol and its implementations. Backends can
use various databases (Redis, PostgreSQL, SQLite, in-memory, etc.) as long as
they satisfy the protocol interface.
"""

from partitioned_memory.storage.memory import InMemoryBackend
from partitioned_memory.storage.protocols import MemoryBackend, QueryPage

__all__ = [
    "InMemoryBackend",
    "MemoryBackend",
    "QueryPage",
]

try:
    from partitioned_memory.storage.redis import RedisBackend  # noqa: F401

    __all__.append("RedisBackend")
except ImportError:
    pass

try:
    from partitioned_memory.storage.sqlalchemy import SQLAlchemyBackend  # noqa: F401

    __all__.append("SQLAlchemyBackend")
except ImportError:
    pass
