"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from knowledge_ingest.models.entities import Chunk, Document

ProcessingStatus = Literal["pending", "processing", "completed", "failed"]


class DocumentResponse(BaseModel):
    id: str
    user_id: str
    original_name: str
    file_type: str
    file_size: int
    processing_status: ProcessingStatus
    processing_error: str | None = None
    summary: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    uploaded_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, document: Document) -> "DocumentResponse":
        return cls(
            id=document.id,
            user_id=document.user_id,
            original_name=document.original_name,
            file_type=document.file_type,
            file_size=document.file_size,
            processing_status=document.processing_status.value,
            processing_error=document.processing_error,
            summary=document.summary,
            metadata=document.metadata,
            uploaded_at=_ms_to_datetime(document.uploaded_at),
            updated_at=_ms_to_datetime(document.updated_at),
        )


class DocumentDetailResponse(DocumentResponse):
    extracted_text: str | None = None

    @classmethod
    def from_entity(cls, document: Document) -> "DocumentDetailResponse":
        base = DocumentResponse.from_entity(document)
        return cls(**base.model_dump(), extracted_text=document.extracted_text)


class ChunkResponse(BaseModel):
    id: str
    document_id: str
    chunk_index: int
    content: str
    word_count: int
    metadata: dict[str, Any]

    @classmethod
    def from_entity(cls, chunk: Chunk) -> "ChunkResponse":
        return cls(
            id=chunk.id,
            document_id=chunk.document_id,
            chunk_index=chunk.chunk_index,
            content=chunk.content,
            word_count=chunk.word_count,
            metadata=chunk.metadata,
        )


class ProcessRequest(BaseModel):
    document_ids: list[str] = Field(min_length=1, description="Documents to ingest, one run each")
    reset_chunks: bool = Field(default=False, description="Delete existing chunks before each run")


class ProcessResponse(BaseModel):
    document_id: str
    status: Literal["completed", "failed"]
    stage: str
    summary: str | None = None
    error: str | None = None
    chunk_count: int = 0
    page_count: int | None = None
    quality: str | None = None
    coverage_ratio: float | None = None
    extracted_preview: str | None = None


class BatchProcessResponse(BaseModel):
    stats: dict[str, int]
    results: list[ProcessResponse]


class DeleteChunksResponse(BaseModel):
    status: Literal["ok", "noop"]
    deleted: int


class CleanupRequest(BaseModel):
    older_than_minutes: int | None = Field(default=None, ge=1)
    user_id: str | None = None


class CleanupResponse(BaseModel):
    failed: int
    document_ids: list[str]


class StatsResponse(BaseModel):
    total_documents: int
    total_bytes: int
    by_status: dict[str, int]
    recent_count: int = 0


def _ms_to_datetime(value: Any) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


__all__ = [
    "DocumentResponse",
    "DocumentDetailResponse",
    "ChunkResponse",
    "ProcessRequest",
    "ProcessResponse",
    "BatchProcessResponse",
    "DeleteChunksResponse",
    "CleanupRequest",
    "CleanupResponse",
    "StatsResponse",
]
