"""Retriever for semantic search over an index.

Embeds the question and runs a single top-k similarity query. Matches
come back in the order the vector database ranks them.
"""
from typing import List, Optional

import structlog

from askdocs import config
from askdocs.rag.models import QueryMatch

logger = structlog.get_logger()


class Retriever:
    """Semantic retriever for the query pipeline."""

    def __init__(self, embedder, store, top_k: Optional[int] = None):
        """Initialize the retriever.

        Args:
            embedder: Service exposing embed_one(text)
            store: Vector database exposing query(...)
            top_k: Default number of matches (default from config)
        """
        self.embedder = embedder
        self.store = store
        self.top_k = config.RETRIEVAL_TOP_K if top_k is None else top_k
        if self.top_k <= 0:
            raise ValueError(f"top_k must be positive, got {self.top_k}")

    async def retrieve(
        self,
        question: str,
        index_name: str,
        top_k: Optional[int] = None,
    ) -> List[QueryMatch]:
        """Retrieve the top_k chunks most similar to the question.

        Args:
            question: Natural-language question
            index_name: Index to search
            top_k: Number of matches (overrides default)

        Returns:
            Matches by descending score; empty if nothing matched

        Raises:
            ValueError: If top_k is not positive
        """
        top_k = self.top_k if top_k is None else top_k
        if top_k <= 0:
            raise ValueError(f"top_k must be positive, got {top_k}")

        logger.info("retrieval_started", index_name=index_name, question_length=len(question), top_k=top_k)

        query_embedding = await self.embedder.embed_one(question)

        matches = await self.store.query(
            index_name,
            query_embedding,
            top_k=top_k,
            include_metadata=True,
            include_values=True,
        )

        logger.info(
            "retrieval_completed",
            index_name=index_name,
            results_returned=len(matches),
            top_score=matches[0].score if matches else None,
        )

        return matches
