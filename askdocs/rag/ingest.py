"""Indexing pipeline: chunk, embed and upsert documents.

Orchestrates, per document:
- Text chunking
- One embedding request for all chunks
- Vector record construction with deterministic ids
- Upserts in fixed-size batches
"""
from typing import Iterable, List, Optional

import structlog

from askdocs import config
from askdocs.errors import DimensionMismatch, PartialIngestion
from askdocs.rag.chunker import TextChunker
from askdocs.rag.models import ChunkConfig, Document, IndexSummary, VectorRecord

logger = structlog.get_logger()


class RecordBatch:
    """Fixed-capacity buffer of records awaiting upsert."""

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"Batch capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._records: List[VectorRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    @property
    def is_full(self) -> bool:
        return len(self._records) >= self.capacity

    def add(self, record: VectorRecord) -> None:
        if self.is_full:
            raise OverflowError("Batch is full; drain it before adding")
        self._records.append(record)

    def drain(self) -> List[VectorRecord]:
        """Return the buffered records and empty the buffer."""
        records, self._records = self._records, []
        return records


class Upserter:
    """Turns documents into vector records and writes them in batches."""

    def __init__(
        self,
        embedder,
        store,
        batch_size: Optional[int] = None,
        chunk_config: Optional[ChunkConfig] = None,
    ):
        """Initialize the upserter.

        Args:
            embedder: Service exposing embed(texts)
            store: Vector database exposing upsert(index_name, records)
            batch_size: Maximum records per upsert call (default from config)
            chunk_config: Default chunk sizing when index() gets none
        """
        self.embedder = embedder
        self.store = store
        self.batch_size = config.UPSERT_BATCH_SIZE if batch_size is None else batch_size
        if self.batch_size <= 0:
            raise ValueError(f"Batch size must be positive, got {self.batch_size}")
        self.chunk_config = chunk_config or ChunkConfig(
            chunk_size=config.CHUNK_SIZE, chunk_overlap=config.CHUNK_OVERLAP
        )

    async def index(
        self,
        document: Document,
        index_name: str,
        chunk_config: Optional[ChunkConfig] = None,
    ) -> IndexSummary:
        """Chunk, embed and upsert one document.

        Returns:
            IndexSummary with the number of chunks and upsert calls

        Raises:
            DimensionMismatch: If the embeddings are not all the same length
            PartialIngestion: If an upsert fails after an earlier batch
                was committed
        """
        chunk_config = chunk_config or self.chunk_config
        logger.info("processing_document", source_id=document.source_id)

        chunker = TextChunker(chunk_config.chunk_size, chunk_config.chunk_overlap)
        chunks = chunker.chunk_text(document.text)

        if not chunks:
            logger.warning("no_chunks_created", source_id=document.source_id)
            return IndexSummary(source_id=document.source_id, chunk_count=0, batch_count=0)

        logger.info("embedding_chunks", source_id=document.source_id, chunk_count=len(chunks))
        embeddings = await self.embedder.embed([c.text.replace("\n", " ") for c in chunks])
        if len(embeddings) != len(chunks):
            raise RuntimeError(f"Expected {len(chunks)} embeddings, got {len(embeddings)}")
        self._check_dimensions(embeddings)

        batch = RecordBatch(self.batch_size)
        batches_committed = 0

        for chunk, values in zip(chunks, embeddings):
            batch.add(VectorRecord.from_chunk(document.source_id, chunk, values))
            if batch.is_full or chunk.ordinal == len(chunks) - 1:
                records = batch.drain()
                try:
                    await self.store.upsert(index_name, records)
                except Exception as e:
                    logger.error(
                        "upsert_batch_failed",
                        source_id=document.source_id,
                        batches_committed=batches_committed,
                        batch_records=len(records),
                        error=str(e),
                    )
                    if batches_committed == 0:
                        raise
                    raise PartialIngestion(document.source_id, batches_committed) from e
                batches_committed += 1

        logger.info(
            "document_indexed",
            source_id=document.source_id,
            vector_count=len(chunks),
            batch_count=batches_committed,
        )

        return IndexSummary(
            source_id=document.source_id,
            chunk_count=len(chunks),
            batch_count=batches_committed,
        )

    async def index_documents(
        self,
        documents: Iterable[Document],
        index_name: str,
        chunk_config: Optional[ChunkConfig] = None,
    ) -> List[IndexSummary]:
        """Index documents one after another; stops at the first failure."""
        summaries = []
        for document in documents:
            summaries.append(await self.index(document, index_name, chunk_config))
        return summaries

    @staticmethod
    def _check_dimensions(embeddings: List[List[float]]) -> None:
        expected = len(embeddings[0])
        for values in embeddings:
            if len(values) != expected:
                raise DimensionMismatch(expected, len(values), "embeddings within one document")
