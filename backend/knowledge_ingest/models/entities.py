"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True)
class Document:
    id: str
    user_id: str
    original_name: str
    storage_path: str
    file_type: str
    file_size: int
    processing_status: DocumentStatus
    processing_error: str | None
    extracted_text: str | None
    summary: str | None
    metadata: dict[str, Any] = field(default_factory=dict)
    uploaded_at: int = 0
    updated_at: int = 0


@dataclass(slots=True)
class Chunk:
    id: str
    document_id: str
    chunk_index: int
    content: str
    word_count: int
    metadata: dict[str, Any]
    created_at: int


__all__ = ["DocumentStatus", "Document", "Chunk"]
