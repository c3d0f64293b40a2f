"""Error types raised by the RAG pipeline and its service adapters."""
from typing import Optional


class AskDocsError(Exception):
    """Base class for all pipeline errors."""

    retryable = False


class ServiceUnavailable(AskDocsError):
    """An embedding, vector database or language model service is unreachable."""

    def __init__(self, service: str, detail: str):
        self.service = service
        self.detail = detail
        super().__init__(f"{service} unavailable: {detail}")


class IndexNotReady(AskDocsError):
    """A newly created index did not report ready before the wait expired."""

    retryable = True

    def __init__(self, name: str, waited: float):
        self.name = name
        self.waited = waited
        super().__init__(f"Index '{name}' not ready after {waited:.1f}s")


class DimensionMismatch(AskDocsError):
    """Embedding length does not match the index dimension."""

    def __init__(self, expected: int, actual: int, detail: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        message = f"Dimension mismatch: expected {expected}, got {actual}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class PartialIngestion(AskDocsError):
    """Some, but not all, upsert batches of a document were committed.

    Re-ingesting the same document is safe: record ids are derived from
    the source id and chunk ordinal, so the retry overwrites.
    """

    retryable = True

    def __init__(self, source_id: str, batches_committed: int):
        self.source_id = source_id
        self.batches_committed = batches_committed
        super().__init__(
            f"Ingestion of '{source_id}' failed after {batches_committed} committed batch(es)"
        )


class IndexNotFound(AskDocsError):
    """The named index does not exist in the vector database."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Index '{name}' not found")
