"""
Text embedding protocol for partitioned-memory.

Provides a unified interface for embedding text into dense vectors
for semantic reranking of search results.
"""

from typing import List, Protocol

from typing_extensions import runtime_checkable


@runtime_checkable
class TextEmbedding(Protocol):
    """
    Protocol for text embedding providers.

    The store embeds indexed value fragments with ``embed_documents`` when
    writing and the search text with ``embed_query`` when reranking. Both
    may fail; the store treats a failing ``embed_query`` as "no ranking"
    and lets ``embed_documents`` errors fail the write.

    Example:
        >>> embedder = OpenAIEmbedding(dimensions=768)
        >>> vector = await embedder.embed_query("Hello world")
        >>> len(vector) == embedder.dimension
        True
    """

    @property
    def dimension(self) -> int:
        """
        Vector dimension produced by this embedder.

        Stored vectors and query vectors must share it for similarity
        scores to be meaningful.
        """
        ...

    @property
    def model_name(self) -> str:
        """Identifier of the embedding model."""
        ...

    async def embed_query(self, text: str) -> List[float]:
        """
        Generate embedding for a search query.

        Args:
            text: Query text to embed

        Returns:
            Embedding vector

        Raises:
            ValueError: If text is empty or too long for the model
        """
        ...

    async def embed_documents(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple value fragments.

        Args:
            texts: Texts to embed

        Returns:
            List of embedding vectors (same order as input)

        Raises:
            ValueError: If any text is empty or too long for the model
        """
        ...
