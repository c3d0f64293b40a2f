"""Tests for the local FAISS vector database."""
import pytest

from askdocs.errors import DimensionMismatch, IndexNotFound
from askdocs.rag.models import VectorRecord
from askdocs.rag.store_faiss import FAISSVectorDatabase


def rec(record_id, values, text=""):
    return VectorRecord(id=record_id, values=values, metadata={"chunk_text": text, "source_id": "d"})


@pytest.fixture
def store(tmp_path):
    return FAISSVectorDatabase(data_dir=tmp_path)


async def test_create_list_and_describe(store):
    await store.create_index("docs", 3)

    assert await store.list_indexes() == {"docs"}
    description = await store.describe_index("docs")
    assert (description.dimension, description.metric, description.ready) == (3, "cosine", True)


async def test_create_rejects_duplicates_and_bad_arguments(store):
    await store.create_index("docs", 3)

    with pytest.raises(ValueError):
        await store.create_index("docs", 3)
    with pytest.raises(ValueError):
        await store.create_index("other", 3, metric="euclidean")
    with pytest.raises(ValueError):
        await store.create_index("bad/name", 3)


async def test_unknown_index(store):
    with pytest.raises(IndexNotFound):
        await store.describe_index("missing")
    with pytest.raises(IndexNotFound):
        await store.query("missing", [1.0, 0.0, 0.0])


async def test_query_orders_by_descending_cosine(store):
    await store.create_index("docs", 3)
    await store.upsert("docs", [
        rec("a", [1.0, 0.0, 0.0], "x axis"),
        rec("b", [0.0, 1.0, 0.0], "y axis"),
        rec("c", [1.0, 1.0, 0.0], "diagonal"),
    ])

    matches = await store.query("docs", [2.0, 0.1, 0.0], top_k=10, include_values=True)

    assert [m.id for m in matches] == ["a", "c", "b"]
    assert matches[0].score == pytest.approx(0.9988, abs=1e-3)
    assert [m.score for m in matches] == sorted((m.score for m in matches), reverse=True)
    assert matches[0].metadata["chunk_text"] == "x axis"
    # Stored values are returned as given, not normalized
    assert matches[1].values == [1.0, 1.0, 0.0]


async def test_query_flags_control_payload(store):
    await store.create_index("docs", 2)
    await store.upsert("docs", [rec("a", [1.0, 0.0], "text")])

    match = (await store.query("docs", [1.0, 0.0], include_metadata=False, include_values=False))[0]

    assert match.metadata == {}
    assert match.values is None


async def test_upsert_overwrites_existing_ids(store):
    await store.create_index("docs", 2)
    await store.upsert("docs", [rec("a", [1.0, 0.0], "old"), rec("b", [0.0, 1.0], "b")])
    await store.upsert("docs", [rec("a", [0.0, 1.0], "new")])

    assert store.get_stats("docs") == {"name": "docs", "vector_count": 2, "record_count": 2}
    matches = await store.query("docs", [0.0, 1.0], top_k=1)
    assert matches[0].score == pytest.approx(1.0)
    top = {m.id: m for m in await store.query("docs", [0.0, 1.0])}
    assert top["a"].metadata["chunk_text"] == "new"


async def test_dimension_mismatch(store):
    await store.create_index("docs", 3)

    with pytest.raises(DimensionMismatch):
        await store.upsert("docs", [rec("a", [1.0, 0.0])])
    with pytest.raises(DimensionMismatch):
        await store.query("docs", [1.0])


async def test_empty_index_returns_no_matches(store):
    await store.create_index("docs", 2)
    assert await store.query("docs", [1.0, 0.0]) == []


async def test_data_survives_reopen(tmp_path):
    first = FAISSVectorDatabase(data_dir=tmp_path)
    await first.create_index("docs", 2)
    await first.upsert("docs", [rec("a", [1.0, 0.0], "kept")])

    reopened = FAISSVectorDatabase(data_dir=tmp_path)

    assert await reopened.list_indexes() == {"docs"}
    matches = await reopened.query("docs", [1.0, 0.0])
    assert [(m.id, m.metadata["chunk_text"]) for m in matches] == [("a", "kept")]


async def test_dotproduct_metric_keeps_magnitude(store):
    await store.create_index("raw", 2, metric="dotproduct")
    await store.upsert("raw", [rec("small", [1.0, 0.0]), rec("large", [3.0, 0.0])])

    matches = await store.query("raw", [1.0, 0.0])

    assert [m.id for m in matches] == ["large", "small"]
    assert matches[0].score == pytest.approx(3.0)


async def test_stores_sharing_a_directory_see_each_others_writes(tmp_path):
    api = FAISSVectorDatabase(data_dir=tmp_path)
    cli = FAISSVectorDatabase(data_dir=tmp_path)
    await api.create_index("docs", 2)
    assert await api.query("docs", [1.0, 0.0]) == []

    await cli.upsert("docs", [rec("cli_doc_0", [1.0, 0.0], "from the script")])
    assert [m.id for m in await api.query("docs", [1.0, 0.0])] == ["cli_doc_0"]

    await api.upsert("docs", [rec("api_doc_0", [0.0, 1.0], "from the api")])

    fresh = FAISSVectorDatabase(data_dir=tmp_path)
    assert {m.id for m in await fresh.query("docs", [1.0, 1.0])} == {"cli_doc_0", "api_doc_0"}
    assert fresh.get_stats("docs") == {"name": "docs", "vector_count": 2, "record_count": 2}


async def test_failed_index_write_leaves_records_unchanged(store, monkeypatch):
    await store.create_index("docs", 2)
    await store.upsert("docs", [rec("a", [1.0, 0.0], "old")])

    def broken_save(name, index):
        raise OSError("disk full")

    monkeypatch.setattr(store, "_save", broken_save)

    with pytest.raises(OSError):
        await store.upsert("docs", [rec("a", [0.0, 1.0], "new"), rec("b", [0.0, 1.0], "b")])

    monkeypatch.undo()
    assert store.get_stats("docs") == {"name": "docs", "vector_count": 1, "record_count": 1}
    matches = await store.query("docs", [1.0, 0.0])
    assert [(m.id, m.metadata["chunk_text"]) for m in matches] == [("a", "old")]
