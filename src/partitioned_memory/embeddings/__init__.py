"""
Text embedding abstractions for partitioned-memory.

Provides a protocol-based embedding interface with an OpenAI adapter:
- TextEmbedding: what the store needs from an embedding provider
- OpenAIEmbedding: OpenAI (or OpenAI-compatible) API embeddings
"""

from partitioned_memory.embeddings.protocol import TextEmbedding

__all__ = [
    "TextEmbedding",
]

# Optional adapters (import only if dependencies available)
try:
    from partitioned_memory.embeddings.openai_embedding import OpenAIEmbedding  # noqa: F401

    __all__.append("OpenAIEmbedding")
except ImportError:
    pass
