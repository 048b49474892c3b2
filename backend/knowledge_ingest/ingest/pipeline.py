"""Ingest pipeline orchestration."""

from __future__ import annotations

import time
from typing import Any, Sequence

from knowledge_ingest.core.config import Settings
from knowledge_ingest.core.errors import IngestionError
from knowledge_ingest.core.logging import get_logger
from knowledge_ingest.core.metrics import CHUNKS_CREATED, COVERAGE_RATIO, INGEST_DURATION, INGEST_RUNS
from knowledge_ingest.db.repository import DocumentRepository
from knowledge_ingest.ingest import coverage, quality
from knowledge_ingest.ingest.chunker import chunk_with_config
from knowledge_ingest.ingest.extraction import ExtractionClient
from knowledge_ingest.ingest.types import ChunkPayload, IngestOutcome, IngestStage, IngestStats
from knowledge_ingest.models.entities import Document, DocumentStatus
from knowledge_ingest.storage.blobs import BlobStore
from knowledge_ingest.utils.text import truncate, word_count
from knowledge_ingest.utils.time import utc_iso

logger = get_logger(__name__)

PREVIEW_CHARS = 500
TRUNCATION_MARKER = "...[truncated]"


class IngestPipeline:
    """Download, extract, assess, chunk and persist one document per run.

    Each call to :meth:`ingest` is an independent attempt. Chunks persisted by
    an earlier attempt are left untouched; callers re-ingesting a document
    must remove them first with :meth:`DocumentRepository.delete_chunks`.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        blob_store: BlobStore,
        extraction_client: ExtractionClient,
        settings: Settings,
    ) -> None:
        self.repository = repository
        self.blob_store = blob_store
        self.extraction_client = extraction_client
        self.settings = settings
        self.chunking_config = settings.chunking_config()
        self.quality_config = settings.quality_config()

    def ingest(self, document_id: str) -> IngestOutcome:
        document = self.repository.get_document(document_id)
        self.repository.mark_processing(document_id)
        logger.info(
            "Processing document %s (%s)",
            document.id,
            document.file_type,
            extra={"ctx_document_id": document.id},
        )

        started = time.perf_counter()
        stage = IngestStage.DOWNLOADING
        try:
            data = self.blob_store.fetch(document.storage_path)

            stage = IngestStage.EXTRACTING
            extraction = self.extraction_client.extract(data, document.file_type)
            text = extraction.text

            stage = IngestStage.ASSESSING
            assessment = quality.assess(text, extraction.page_count, self.quality_config, document_id=document.id)

            chunks: list[ChunkPayload] = []
            coverage_ratio: float | None = None
            if assessment.should_chunk:
                stage = IngestStage.CHUNKING
                chunks = chunk_with_config(text, self.chunking_config, page_count=extraction.page_count)

                stage = IngestStage.VALIDATING
                report = coverage.validate(
                    text, chunks, self.quality_config.min_coverage_ratio, document_id=document.id
                )
                coverage_ratio = round(report.ratio, 4)
                COVERAGE_RATIO.observe(report.ratio)
                summary = quality.preview_summary(
                    document.original_name,
                    document.file_type,
                    text,
                    extraction.page_count,
                    self.settings.summary_preview_words,
                )
            else:
                stage = IngestStage.SKIPPED_CHUNKING
                logger.warning(
                    "Limited extraction for %s; skipping chunking",
                    document.id,
                    extra={"ctx_document_id": document.id, "ctx_char_count": assessment.char_count},
                )
                summary = quality.limited_summary(document.original_name, document.file_type)

            stage = IngestStage.PERSISTING
            self.repository.insert_chunks(chunk.to_record(document.id) for chunk in chunks)
            self.repository.update_document(
                document.id,
                DocumentStatus.COMPLETED,
                summary=summary,
                metadata=self._build_metadata(
                    document, text, extraction.page_count, len(chunks), assessment.quality, coverage_ratio
                ),
                extracted_text=truncate(text, self.settings.extracted_text_ceiling, TRUNCATION_MARKER),
            )
        except IngestionError as exc:
            logger.error(
                "Ingestion of %s failed during %s: %s",
                document.id,
                stage.value,
                exc,
                extra={"ctx_document_id": document.id, "ctx_stage": stage.value},
            )
            return self._fail(document, stage, str(exc), started)
        except Exception as exc:
            logger.exception("Unexpected ingestion error for %s", document.id)
            self._fail(document, stage, f"Unexpected processing error: {exc}", started)
            raise

        CHUNKS_CREATED.inc(len(chunks))
        self._observe(DocumentStatus.COMPLETED, started)
        logger.info(
            "Document %s processed: %s chars, %s chunks",
            document.id,
            len(text),
            len(chunks),
            extra={"ctx_document_id": document.id, "ctx_quality": assessment.quality},
        )
        return IngestOutcome(
            document_id=document.id,
            status=DocumentStatus.COMPLETED.value,
            stage=IngestStage.COMPLETED,
            summary=summary,
            chunk_count=len(chunks),
            page_count=extraction.page_count,
            quality=assessment.quality,
            coverage_ratio=coverage_ratio,
            extracted_preview=truncate(text, PREVIEW_CHARS),
        )

    def ingest_many(self, document_ids: Sequence[str]) -> dict[str, object]:
        """Run independent attempts for several documents, one after another."""
        stats = IngestStats()
        outcomes: list[IngestOutcome] = []
        for document_id in document_ids:
            outcome = self.ingest(document_id)
            stats.record(outcome)
            outcomes.append(outcome)
        return {"stats": stats.to_dict(), "results": [outcome.to_dict() for outcome in outcomes]}

    def _fail(self, document: Document, stage: IngestStage, message: str, started: float) -> IngestOutcome:
        try:
            self.repository.update_document(document.id, DocumentStatus.FAILED, error_message=message)
        except IngestionError:
            logger.exception("Could not record failure for %s", document.id)
        self._observe(DocumentStatus.FAILED, started)
        return IngestOutcome(
            document_id=document.id,
            status=DocumentStatus.FAILED.value,
            stage=stage,
            error=message,
        )

    def _build_metadata(
        self,
        document: Document,
        text: str,
        page_count: int,
        chunk_count: int,
        extraction_quality: str,
        coverage_ratio: float | None,
    ) -> dict[str, Any]:
        metadata = dict(document.metadata)
        metadata.update(
            {
                "page_count": page_count,
                "text_length": len(text),
                "word_count": word_count(text),
                "chunk_count": chunk_count,
                "extraction_quality": extraction_quality,
                "processing_timestamp": utc_iso(),
            }
        )
        if coverage_ratio is not None:
            metadata["coverage_ratio"] = coverage_ratio
        return metadata

    @staticmethod
    def _observe(status: DocumentStatus, started: float) -> None:
        INGEST_RUNS.labels(status=status.value).inc()
        INGEST_DURATION.observe(time.perf_counter() - started)


__all__ = ["IngestPipeline"]
