"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

QUALITY_GOOD = "good"
QUALITY_LIMITED = "limited"


class IngestStage(str, Enum):
    """Stages of a single ingestion run."""

    PENDING = "pending"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    ASSESSING = "assessing"
    CHUNKING = "chunking"
    VALIDATING = "validating"
    SKIPPED_CHUNKING = "skipped_chunking"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class ChunkingConfig:
    """Word budgets for the semantic chunker."""

    target_words: int = 800
    max_words: int = 1200
    overlap_words: int = 100

    def __post_init__(self) -> None:
        if self.target_words < 1 or self.max_words < 1:
            raise ValueError("target_words and max_words must be positive")
        if self.overlap_words < 0:
            raise ValueError("overlap_words must not be negative")
        if self.target_words > self.max_words:
            raise ValueError("target_words must not exceed max_words")


@dataclass(slots=True, frozen=True)
class QualityConfig:
    """Thresholds used to judge extraction quality and chunk coverage."""

    min_chars_per_page: int = 50
    absolute_min_chars: int = 100
    min_coverage_ratio: float = 0.9


@dataclass(slots=True)
class ExtractionResult:
    """Text recovered by the extraction service for one document."""

    status: str
    text: str
    page_count: int
    word_count: int
    attempts: int = 0


@dataclass(slots=True)
class QualityAssessment:
    """Outcome of the density heuristic."""

    quality: str
    expected_min_chars: int
    char_count: int
    low_density: bool

    @property
    def should_chunk(self) -> bool:
        return self.quality == QUALITY_GOOD


@dataclass(slots=True)
class ChunkPayload:
    """Chunk produced by the chunker prior to persistence."""

    chunk_index: int
    content: str
    word_count: int
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_record(self, document_id: str) -> dict[str, Any]:
        return {
            "document_id": document_id,
            "chunk_index": self.chunk_index,
            "content": self.content,
            "word_count": self.word_count,
            "metadata": dict(self.metadata),
        }


@dataclass(slots=True)
class IngestOutcome:
    """Final record of one ingestion attempt."""

    document_id: str
    status: str
    stage: IngestStage
    summary: str | None = None
    error: str | None = None
    chunk_count: int = 0
    page_count: int | None = None
    quality: str | None = None
    coverage_ratio: float | None = None
    extracted_preview: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_id": self.document_id,
            "status": self.status,
            "stage": self.stage.value,
            "summary": self.summary,
            "error": self.error,
            "chunk_count": self.chunk_count,
            "page_count": self.page_count,
            "quality": self.quality,
            "coverage_ratio": self.coverage_ratio,
            "extracted_preview": self.extracted_preview,
        }


@dataclass(slots=True)
class IngestStats:
    """Aggregated outcome counts for a batch of runs."""

    completed: int = 0
    failed: int = 0
    limited: int = 0
    chunks: int = 0

    def record(self, outcome: IngestOutcome) -> None:
        if outcome.status == "completed":
            self.completed += 1
            self.chunks += outcome.chunk_count
            if outcome.quality == "limited":
                self.limited += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict[str, int]:
        return {
            "completed": self.completed,
            "failed": self.failed,
            "limited": self.limited,
            "chunks": self.chunks,
        }


__all__ = [
    "QUALITY_GOOD",
    "QUALITY_LIMITED",
    "IngestStage",
    "ChunkingConfig",
    "QualityConfig",
    "ExtractionResult",
    "QualityAssessment",
    "ChunkPayload",
    "IngestOutcome",
    "IngestStats",
]
