"""
Embedding wrapper for online FAQ retrieval.

Uses the OpenAI embeddings API (text-embedding-3-small by default). Vectors
come back as a float32 numpy matrix, one row per input text, index-aligned.
"""

from typing import Any, List, Optional
import logging

import numpy as np
from openai import AsyncOpenAI

import config

logger = logging.getLogger(__name__)


class EmbeddingModel:
    """Async wrapper around the embeddings endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[Any] = None
    ):
        """
        Initialize embedding model client.

        Args:
            api_key: OpenAI API key (default: config.OPENAI_API_KEY)
            model_name: Embedding model (default: config.EMBEDDING_MODEL)
            base_url: Optional OpenAI-compatible endpoint
            client: Pre-built client (takes precedence over api_key)
        """
        self.model_name = model_name or config.EMBEDDING_MODEL
        api_key = api_key or config.OPENAI_API_KEY
        self.client = client
        if self.client is None:
            if not api_key:
                raise ValueError("EmbeddingModel requires OPENAI_API_KEY")
            self.client = AsyncOpenAI(api_key=api_key, base_url=base_url or config.OPENAI_BASE_URL or None)
        logger.info(f"Embedding model: {self.model_name}")

    async def embed(self, texts: List[str]) -> np.ndarray:
        """
        Embed multiple texts in one request.

        Args:
            texts: Texts to embed

        Returns:
            Array of shape (len(texts), dimension)
        """
        if not texts:
            return np.zeros((0, 0), dtype=np.float32)

        logger.debug(f"Embedding {len(texts)} texts with {self.model_name}")
        response = await self.client.embeddings.create(model=self.model_name, input=texts)

        # The API may return items out of order; realign by index
        data = sorted(response.data, key=lambda d: d.index)
        return np.asarray([d.embedding for d in data], dtype=np.float32)
