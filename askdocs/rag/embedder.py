"""Embedding generation through Ollama."""
from typing import List, Optional

import structlog

from askdocs import config
from askdocs.llm_client import OllamaClient

logger = structlog.get_logger()


class OllamaEmbedder:
    """Turns text into fixed-dimension vectors with an Ollama embedding model."""

    def __init__(self, client: OllamaClient, model: Optional[str] = None):
        self.client = client
        self.model = model or config.EMBEDDING_MODEL

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """Embed a batch of texts with a single request.

        Returns:
            Embeddings in the same order as texts

        Raises:
            RuntimeError: If the service returns the wrong number of vectors
                or an empty vector
        """
        if not texts:
            return []

        embeddings = await self.client.embed(texts, model=self.model)

        if len(embeddings) != len(texts):
            raise RuntimeError(
                f"Expected {len(texts)} embeddings from {self.model}, got {len(embeddings)}"
            )
        if any(not vector for vector in embeddings):
            raise RuntimeError(f"Empty embedding returned from {self.model}")

        return embeddings

    async def embed_one(self, text: str) -> List[float]:
        """Embed a single text, typically a query."""
        embeddings = await self.embed([text])
        return embeddings[0]

    async def detect_dimension(self) -> int:
        """Detect the embedding dimension by embedding a probe string."""
        logger.info("detecting_embedding_dimension", model=self.model)

        dimension = len(await self.embed_one("test"))

        logger.info("embedding_dimension_detected", model=self.model, dimension=dimension)
        return dimension
