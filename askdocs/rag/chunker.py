"""Text chunking for the RAG pipeline.

Character-based recursive splitting: paragraphs first, then lines,
sentences and words, with a hard cut only when nothing else fits.
Separators stay attached to the piece they end, so chunks concatenate
back to the original text when no overlap is configured.
"""
import re
from typing import List, Optional, Tuple

import structlog

from askdocs import config
from askdocs.rag.models import Chunk

logger = structlog.get_logger()

Span = Tuple[int, int]

# Coarsest to finest
BOUNDARIES = [
    re.compile(r"\n\n+"),  # paragraph
    re.compile(r"\n"),  # line
    re.compile(r"[.!?]+\s"),  # sentence
    re.compile(r"\s+"),  # word
]


class TextChunker:
    """Recursive character chunker with optional overlap."""

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
    ):
        """Initialize the text chunker.

        Args:
            chunk_size: Maximum chunk length in characters (default from config)
            chunk_overlap: Characters of the previous chunk to repeat at the
                start of the next one (default from config)
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = config.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap

        if self.chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {self.chunk_size}")
        if self.chunk_overlap < 0 or self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"Overlap ({self.chunk_overlap}) must be non-negative and less than "
                f"chunk size ({self.chunk_size})"
            )

    def chunk_text(self, text: str) -> List[Chunk]:
        """Split text into ordered chunks of at most chunk_size characters.

        Args:
            text: Text to chunk

        Returns:
            List of Chunk objects with contiguous ordinals starting at 0
        """
        if not text:
            return []

        spans = self._merge(self._split(text, 0, len(text), 0))
        chunks = [
            Chunk(text=text[start:end], ordinal=ordinal, loc=self._location(text, start, end))
            for ordinal, (start, end) in enumerate(spans)
        ]

        logger.info(
            "text_chunked",
            text_length=len(text),
            chunk_count=len(chunks),
            chunk_size=self.chunk_size,
        )

        return chunks

    def _split(self, text: str, start: int, end: int, level: int) -> List[Span]:
        """Break text[start:end] into spans no longer than chunk_size."""
        if end - start <= self.chunk_size:
            return [(start, end)]

        if level == len(BOUNDARIES):
            # No boundary left, hard cut
            return [
                (pos, min(pos + self.chunk_size, end))
                for pos in range(start, end, self.chunk_size)
            ]

        cuts = [m.end() for m in BOUNDARIES[level].finditer(text, start, end) if m.end() < end]
        if not cuts:
            return self._split(text, start, end, level + 1)

        spans = []
        piece_start = start
        for cut in cuts + [end]:
            spans.extend(self._split(text, piece_start, cut, level + 1))
            piece_start = cut
        return spans

    def _merge(self, spans: List[Span]) -> List[Span]:
        """Greedily join adjacent spans up to chunk_size, keeping overlap."""
        merged: List[Span] = []
        window: List[Span] = []
        total = 0

        for span in spans:
            length = span[1] - span[0]
            if window and total + length > self.chunk_size:
                merged.append((window[0][0], window[-1][1]))
                while window and (
                    total > self.chunk_overlap or total + length > self.chunk_size
                ):
                    total -= window[0][1] - window[0][0]
                    window.pop(0)
            window.append(span)
            total += length

        if window:
            merged.append((window[0][0], window[-1][1]))
        return merged

    @staticmethod
    def _location(text: str, start: int, end: int) -> dict:
        first_line = text.count("\n", 0, start) + 1
        last_line = first_line + text[start:end].rstrip("\n").count("\n")
        return {
            "char_start": start,
            "char_end": end,
            "lines": {"from": first_line, "to": last_line},
        }

    def get_chunk_stats(self, chunks: List[Chunk]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of Chunk objects

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_chars": 0,
                "avg_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
            }

        chunk_sizes = [len(c.text) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
            "overlap": self.chunk_overlap,
        }


def chunk_text(text: str, max_chunk_size: int = 1000) -> List[Chunk]:
    """Chunk text without overlap (convenience function)."""
    return TextChunker(chunk_size=max_chunk_size, chunk_overlap=0).chunk_text(text)
