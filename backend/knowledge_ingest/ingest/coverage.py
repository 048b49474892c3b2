"""Word coverage checks for chunk sets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from knowledge_ingest.core.logging import get_logger
from knowledge_ingest.ingest.types import ChunkPayload
from knowledge_ingest.utils.text import word_count

logger = get_logger(__name__)


@dataclass(slots=True)
class CoverageReport:
    original_words: int
    chunk_words: int
    overlap_words: int
    ratio: float

    @property
    def unique_ratio(self) -> float:
        """Coverage after removing words carried over from the previous chunk."""
        if self.original_words == 0:
            return 0.0
        return (self.chunk_words - self.overlap_words) / self.original_words


def coverage_ratio(original_text: str, chunks: Sequence[ChunkPayload]) -> float:
    """Total chunk words divided by original words; above 1.0 when overlaps duplicate text."""
    original = word_count(original_text)
    if original == 0:
        return 0.0
    return sum(word_count(chunk.content) for chunk in chunks) / original


def validate(
    original_text: str,
    chunks: Sequence[ChunkPayload],
    min_ratio: float = 0.9,
    *,
    document_id: str | None = None,
) -> CoverageReport:
    """Measure coverage and log a warning below ``min_ratio``. Never raises."""
    original = word_count(original_text)
    chunk_words = sum(word_count(chunk.content) for chunk in chunks)
    overlap = sum(int(chunk.metadata.get("overlap_from_previous", 0)) for chunk in chunks)
    ratio = chunk_words / original if original else 0.0
    if ratio < min_ratio:
        logger.warning(
            "Low chunk coverage %.3f (%s of %s words)",
            ratio,
            chunk_words,
            original,
            extra={
                "ctx_document_id": document_id,
                "ctx_coverage_ratio": ratio,
                "ctx_chunk_count": len(chunks),
            },
        )
    return CoverageReport(original_words=original, chunk_words=chunk_words, overlap_words=overlap, ratio=ratio)


__all__ = ["CoverageReport", "coverage_ratio", "validate"]
