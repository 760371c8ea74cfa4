"""OpenAI embedding adapter for partitioned-memory."""

import logging
import os
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbedding:
    """
    Embedding adapter using OpenAI's embedding API.

    Supports OpenAI's embedding models via API:
    - text-embedding-3-small (1536 dims, configurable 512-1536)
    - text-embedding-3-large (3072 dims)
    - text-embedding-ada-002 (1536 dims, legacy)

    Also compatible with OpenAI-compatible APIs (Azure, OpenRouter, etc.)

    Example:
        >>> embedder = OpenAIEmbedding(
        ...     model="text-embedding-3-small",
        ...     dimensions=768,
        ...     api_key="sk-..."
        ... )
        >>> vectors = await embedder.embed_documents(["I like pizza"])
        >>> len(vectors[0])
        768
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        dimensions: Optional[int] = None,
        timeout: float = 30.0,
        max_retries: int = 3,
    ):
        """
        Initialize OpenAI embedder.

        Args:
            model: OpenAI model name (default: text-embedding-3-small)
            api_key: OpenAI API key (None = use OPENAI_API_KEY env var)
            base_url: Custom endpoint (None = official OpenAI, or Azure/OpenRouter)
            dimensions: Output dimension (only for 3-small/3-large)
            timeout: Request timeout in seconds
            max_retries: Number of retry attempts for failed requests

        Raises:
            ValueError: If the model is unknown and no dimensions are given
        """
        try:
            from openai import AsyncOpenAI
        except ImportError as e:
            raise ImportError(
                "openai is required for OpenAIEmbedding. "
                "Install with: pip install partitioned-memory[openai]"
            ) from e

        self._model = model
        self._dimensions = dimensions

        self._client = AsyncOpenAI(
            api_key=api_key or os.getenv("OPENAI_API_KEY"),
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
        )

        if dimensions is not None:
            self._dimension = dimensions
        elif model in DEFAULT_DIMENSIONS:
            self._dimension = DEFAULT_DIMENSIONS[model]
        else:
            raise ValueError(f"Unknown model {model}: pass dimensions explicitly")

        logger.info(f"OpenAI embedder initialized: {model} ({self._dimension} dimensions)")

    @property
    def dimension(self) -> int:
        """Vector dimension produced by this model."""
        return self._dimension

    @property
    def model_name(self) -> str:
        """Identifier of the OpenAI model."""
        return self._model

    async def _embed(self, texts: List[str]) -> List[List[float]]:
        kwargs = {"model": self._model, "input": texts}
        if self._dimensions is not None:
            kwargs["dimensions"] = self._dimensions

        response = await self._client.embeddings.create(**kwargs)

        # API preserves input order
        return [item.embedding for item in response.data]

    async def embed_query(self, text: str) -> List[float]:
        """
        Generate embedding for a search query.

        Raises:
            ValueError: If text is empty
            openai.OpenAIError: If API request fails
        """
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")

        vectors = await self._embed([text])
        return vectors[0]

    async def embed_documents(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts in one request.

        Raises:
            ValueError: If any text is empty
            openai.OpenAIError: If API request fails
        """
        if not texts:
            return []

        if any(not text or not text.strip() for text in texts):
            raise ValueError("Cannot embed empty texts in batch")

        return await self._embed(texts)
