"""Data types shared across the indexing and query pipelines."""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class Document:
    """A unit of ingestion: raw text plus the id it is stored under."""

    source_id: str
    text: str


@dataclass(frozen=True)
class Chunk:
    """A bounded slice of a document's text."""

    text: str
    ordinal: int
    loc: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ChunkConfig:
    """Chunk sizing in characters."""

    chunk_size: int = 1000
    chunk_overlap: int = 0


def make_record_id(source_id: str, ordinal: int) -> str:
    """Deterministic vector id for a chunk, so re-ingestion overwrites."""
    return f"{source_id}_{ordinal}"


@dataclass
class VectorRecord:
    """An embedding with its id and metadata, ready to upsert."""

    id: str
    values: List[float]
    metadata: Dict[str, Any]

    @classmethod
    def from_chunk(cls, source_id: str, chunk: Chunk, values: List[float]) -> "VectorRecord":
        return cls(
            id=make_record_id(source_id, chunk.ordinal),
            values=values,
            metadata={
                "chunk_text": chunk.text,
                # Hosted stores only accept flat metadata values
                "loc": json.dumps(chunk.loc),
                "source_id": source_id,
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "values": self.values, "metadata": self.metadata}


@dataclass
class QueryMatch:
    """A single similarity search hit."""

    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)
    values: Optional[List[float]] = None

    @property
    def chunk_text(self) -> str:
        return self.metadata.get("chunk_text", "")


@dataclass(frozen=True)
class IndexDescription:
    """Status of a named vector index."""

    name: str
    dimension: int
    metric: str
    ready: bool
    host: Optional[str] = None


@dataclass(frozen=True)
class IndexSummary:
    """Result of ingesting one document."""

    source_id: str
    chunk_count: int
    batch_count: int


@dataclass(frozen=True)
class Answer:
    """Text produced by the language model for a question."""

    text: str


@dataclass(frozen=True)
class NoAnswer:
    """No relevant context was found, so the language model was not called."""

    reason: str = "no matching context"


SynthesisResult = Union[Answer, NoAnswer]
