"""Shared fixtures and service fakes for the test suite."""
from typing import Dict, List, Optional

import pytest

from askdocs.config import Settings
from askdocs.rag.models import IndexDescription, QueryMatch, VectorRecord

VOCABULARY = ["apple", "volcano", "satellite", "river"]


class FakeEmbedder:
    """Keyword-count embedder: one dimension per vocabulary word plus a bias."""

    def __init__(self, vocabulary: Optional[List[str]] = None):
        self.vocabulary = vocabulary or VOCABULARY
        self.embed_calls: List[List[str]] = []

    @property
    def dimension(self) -> int:
        return len(self.vocabulary) + 1

    def _vector(self, text: str) -> List[float]:
        lowered = text.lower()
        return [float(lowered.count(word)) for word in self.vocabulary] + [1.0]

    async def embed(self, texts: List[str]) -> List[List[float]]:
        self.embed_calls.append(list(texts))
        return [self._vector(text) for text in texts]

    async def embed_one(self, text: str) -> List[float]:
        return (await self.embed([text]))[0]

    async def detect_dimension(self) -> int:
        return self.dimension


class FakeVectorStore:
    """In-memory vector database recording every call."""

    def __init__(
        self,
        ready_after: float = 0,
        fail_on_upsert_call: Optional[int] = None,
        matches: Optional[List[QueryMatch]] = None,
    ):
        self.indexes: Dict[str, Dict] = {}
        self.ready_after = ready_after
        self.fail_on_upsert_call = fail_on_upsert_call
        self.matches = matches or []

        self.create_calls = []
        self.describe_calls = 0
        self.upsert_calls: List[tuple] = []
        self.query_calls: List[Dict] = []

    async def list_indexes(self):
        return set(self.indexes)

    async def create_index(self, name, dimension, metric="cosine"):
        self.create_calls.append((name, dimension, metric))
        self.indexes[name] = {"dimension": dimension, "metric": metric}

    async def describe_index(self, name):
        self.describe_calls += 1
        info = self.indexes[name]
        return IndexDescription(
            name=name,
            dimension=info["dimension"],
            metric=info["metric"],
            ready=self.describe_calls > self.ready_after,
        )

    async def upsert(self, index_name, records: List[VectorRecord]):
        if self.fail_on_upsert_call == len(self.upsert_calls) + 1:
            raise RuntimeError("upsert failed")
        self.upsert_calls.append((index_name, list(records)))
        return len(records)

    async def query(self, index_name, vector, top_k=10, include_metadata=True, include_values=False):
        self.query_calls.append({
            "index_name": index_name,
            "vector": vector,
            "top_k": top_k,
            "include_metadata": include_metadata,
            "include_values": include_values,
        })
        return self.matches[:top_k]


class FakeAnswerer:
    """Question answerer recording its inputs."""

    def __init__(self, reply: str = "It is a volcano."):
        self.reply = reply
        self.calls = []

    async def answer(self, context_documents, question):
        self.calls.append((list(context_documents), question))
        return self.reply


def make_paragraph(word: str, length: int) -> str:
    sentence = f"The {word} is discussed in this paragraph. "
    return (sentence * (length // len(sentence) + 1))[:length]


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def answerer():
    return FakeAnswerer()


@pytest.fixture
def fake_store():
    return FakeVectorStore()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        data_dir=tmp_path / "data",
        documents_dir=tmp_path / "documents",
        vector_backend="faiss",
        index_name="test-index",
        embedding_dimension=None,
        chat_model="llama2",
        embedding_model="llama2",
        chunk_size=1000,
        chunk_overlap=0,
        upsert_batch_size=100,
        top_k=10,
        similarity_metric="cosine",
        index_ready_timeout=1.0,
        index_poll_interval=0.001,
        index_poll_backoff=2.0,
    )


@pytest.fixture
def three_topic_text():
    """2500 characters: apple, volcano and satellite paragraphs."""
    text = "\n\n".join(make_paragraph(word, 832) for word in ("apple", "volcano", "satellite"))
    assert len(text) == 2500
    return text
