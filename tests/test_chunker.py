"""Tests for the recursive text chunker."""
import pytest

from askdocs.rag.chunker import TextChunker, chunk_text


def assert_well_formed(chunks, text, size):
    assert [c.ordinal for c in chunks] == list(range(len(chunks)))
    assert all(len(c.text) <= size for c in chunks)
    assert "".join(c.text for c in chunks) == text


def test_empty_text_produces_no_chunks():
    assert TextChunker(chunk_size=100, chunk_overlap=0).chunk_text("") == []


def test_short_text_is_single_chunk():
    chunks = TextChunker(chunk_size=100, chunk_overlap=0).chunk_text("Hello world.")

    assert len(chunks) == 1
    assert chunks[0].text == "Hello world."
    assert chunks[0].ordinal == 0
    assert chunks[0].loc == {"char_start": 0, "char_end": 12, "lines": {"from": 1, "to": 1}}


def test_whitespace_only_text_is_still_chunked():
    chunks = TextChunker(chunk_size=100, chunk_overlap=0).chunk_text("   ")
    assert len(chunks) == 1


def test_prefers_paragraph_boundaries():
    text = "a" * 600 + "\n\n" + "b" * 600
    chunks = TextChunker(chunk_size=1000, chunk_overlap=0).chunk_text(text)

    assert [c.text for c in chunks] == ["a" * 600 + "\n\n", "b" * 600]
    assert chunks[1].loc["lines"] == {"from": 3, "to": 3}
    assert chunks[1].loc["char_start"] == 602


def test_prefers_sentence_over_word_boundaries():
    first = "This sentence is about apples and nothing else at all. "
    second = "Another sentence follows it here."
    text = first + second
    chunks = TextChunker(chunk_size=len(first) + 5, chunk_overlap=0).chunk_text(text)

    assert chunks[0].text == first
    assert chunks[1].text == second


def test_splits_on_words_before_hard_cut():
    text = " ".join(f"word{i}" for i in range(50))
    chunks = TextChunker(chunk_size=30, chunk_overlap=0).chunk_text(text)

    assert_well_formed(chunks, text, 30)
    # Every chunk but the last ends on a space, so no word is severed
    assert all(c.text.endswith(" ") for c in chunks[:-1])


def test_hard_cut_when_no_boundary_exists():
    text = "x" * 2500
    chunks = TextChunker(chunk_size=1000, chunk_overlap=0).chunk_text(text)

    assert [len(c.text) for c in chunks] == [1000, 1000, 500]
    assert_well_formed(chunks, text, 1000)


@pytest.mark.parametrize("size", [7, 50, 120, 1000])
def test_mixed_text_respects_size_and_reconstructs(size):
    text = (
        "# Title\n\nFirst paragraph. It has two sentences!\n"
        "A second line follows?\n\n"
        + "Supercalifragilisticexpialidocious " * 12
        + "\n\n" + "z" * 300 + "\n"
    )
    chunks = TextChunker(chunk_size=size, chunk_overlap=0).chunk_text(text)
    assert_well_formed(chunks, text, size)


def test_three_paragraph_document(three_topic_text):
    chunks = chunk_text(three_topic_text, max_chunk_size=1000)

    assert len(chunks) == 3
    assert "apple" in chunks[0].text
    assert "volcano" in chunks[1].text
    assert "satellite" in chunks[2].text
    assert_well_formed(chunks, three_topic_text, 1000)


def test_overlap_repeats_tail_of_previous_chunk():
    text = "".join(f"w{i:03d} " for i in range(100))
    chunks = TextChunker(chunk_size=100, chunk_overlap=20).chunk_text(text)

    assert chunks[0].text.endswith("w016 w017 w018 w019 ")
    assert chunks[1].text.startswith("w016 ")
    assert all(len(c.text) <= 100 for c in chunks)
    assert chunks[-1].text.endswith("w099 ")
    assert [c.ordinal for c in chunks] == list(range(len(chunks)))


@pytest.mark.parametrize("overlap", [100, 150, -1])
def test_invalid_overlap_rejected(overlap):
    with pytest.raises(ValueError):
        TextChunker(chunk_size=100, chunk_overlap=overlap)


@pytest.mark.parametrize("size", [0, -5])
def test_non_positive_chunk_size_rejected(size):
    with pytest.raises(ValueError):
        TextChunker(chunk_size=size, chunk_overlap=0)


def test_chunk_stats():
    chunker = TextChunker(chunk_size=10, chunk_overlap=0)
    stats = chunker.get_chunk_stats(chunker.chunk_text("aaaa bbbb cccc"))

    assert stats["chunk_count"] == 2
    assert stats["total_chars"] == 14
    assert stats["max_chunk_size"] <= 10
    assert chunker.get_chunk_stats([])["chunk_count"] == 0
