"""End-to-end tests for the ingestion orchestrator."""

from __future__ import annotations

import pytest

from fakes import RUNNING, FakeAnalysisService, failed, succeeded
from knowledge_ingest.core.errors import DocumentNotFound
from knowledge_ingest.ingest.extraction import ExtractionClient
from knowledge_ingest.ingest.pipeline import IngestPipeline
from knowledge_ingest.ingest.types import IngestStage
from knowledge_ingest.models.entities import DocumentStatus


@pytest.fixture
def upload(repository, blob_store):
    def _upload(name: str = "report.pdf", media_type: str = "application/pdf", data: bytes = b"%PDF-1.7 body"):
        location = f"user-1/{name}"
        blob_store.put(location, data)
        return repository.create_document(
            user_id="user-1",
            original_name=name,
            storage_path=location,
            file_type=media_type,
            file_size=len(data),
            metadata={"source": "upload"},
        )

    return _upload


@pytest.fixture
def build_pipeline(repository, blob_store, settings):
    def _build(service: FakeAnalysisService) -> IngestPipeline:
        client = ExtractionClient(
            settings.extraction_endpoint,
            session=service,
            max_attempts=settings.extraction_max_attempts,
            sleep=lambda _seconds: None,
        )
        return IngestPipeline(repository, blob_store, client, settings)

    return _build


def test_good_document_is_chunked_and_persisted(upload, build_pipeline, repository, uniform_text) -> None:
    document = upload()
    text = uniform_text(250)
    pipeline = build_pipeline(FakeAnalysisService([RUNNING, succeeded(text, pages=4)]))

    outcome = pipeline.ingest(document.id)

    assert outcome.status == "completed"
    assert outcome.stage is IngestStage.COMPLETED
    assert outcome.quality == "good"
    assert outcome.page_count == 4
    assert outcome.chunk_count == 4
    assert outcome.coverage_ratio is not None and outcome.coverage_ratio >= 0.9

    stored = repository.get_document(document.id)
    assert stored.processing_status is DocumentStatus.COMPLETED
    assert stored.processing_error is None
    assert stored.extracted_text == text
    assert stored.summary.startswith('PDF document "report.pdf" (4 pages) successfully processed.')
    assert stored.metadata["source"] == "upload"
    assert stored.metadata["page_count"] == 4
    assert stored.metadata["text_length"] == len(text)
    assert stored.metadata["extraction_quality"] == "good"
    assert stored.metadata["chunk_count"] == repository.count_chunks(document.id) == 4
    assert "processing_timestamp" in stored.metadata

    chunks = repository.list_chunks(document.id)
    assert [chunk.chunk_index for chunk in chunks] == [0, 1, 2, 3]
    assert all(chunk.word_count == len(chunk.content.split()) for chunk in chunks)
    assert [chunk.metadata["is_final"] for chunk in chunks] == [False, False, False, True]
    assert all(chunk.metadata["page_count"] == 4 for chunk in chunks)


def test_limited_extraction_completes_without_chunks(upload, build_pipeline, repository) -> None:
    document = upload(name="scan.pdf")
    pipeline = build_pipeline(FakeAnalysisService([succeeded("x" * 40, pages=1)]))

    outcome = pipeline.ingest(document.id)

    assert outcome.status == "completed"
    assert outcome.quality == "limited"
    assert outcome.chunk_count == 0
    stored = repository.get_document(document.id)
    assert stored.processing_status is DocumentStatus.COMPLETED
    assert "limited text extraction" in stored.summary
    assert stored.metadata["extraction_quality"] == "limited"
    assert stored.metadata["chunk_count"] == 0
    assert repository.count_chunks(document.id) == 0


def test_failed_analysis_marks_document_failed(upload, build_pipeline, repository) -> None:
    document = upload()
    pipeline = build_pipeline(FakeAnalysisService([RUNNING, failed()]))

    outcome = pipeline.ingest(document.id)

    assert outcome.status == "failed"
    assert outcome.stage is IngestStage.EXTRACTING
    assert "analysis failed" in outcome.error
    stored = repository.get_document(document.id)
    assert stored.processing_status is DocumentStatus.FAILED
    assert "analysis failed" in stored.processing_error
    assert repository.count_chunks(document.id) == 0


def test_extraction_timeout_marks_document_failed(upload, build_pipeline, repository) -> None:
    document = upload()
    service = FakeAnalysisService([RUNNING])
    outcome = build_pipeline(service).ingest(document.id)

    assert outcome.status == "failed"
    assert "5 polling attempts" in outcome.error
    assert service.poll_count == 5
    assert repository.get_document(document.id).processing_status is DocumentStatus.FAILED


def test_missing_blob_fails_during_download(upload, build_pipeline, repository, blob_store) -> None:
    document = upload()
    blob_store.delete(document.storage_path)
    service = FakeAnalysisService([succeeded("unused")])

    outcome = build_pipeline(service).ingest(document.id)

    assert outcome.status == "failed"
    assert outcome.stage is IngestStage.DOWNLOADING
    assert "Failed to download document" in outcome.error
    assert service.submissions == []


def test_unsupported_media_type_fails_run(upload, build_pipeline, repository) -> None:
    document = upload(name="notes.txt", media_type="text/plain")
    outcome = build_pipeline(FakeAnalysisService()).ingest(document.id)
    assert outcome.status == "failed"
    assert "Unsupported media type" in repository.get_document(document.id).processing_error


def test_reingest_without_clearing_chunks_fails_persistence(upload, build_pipeline, repository, uniform_text) -> None:
    document = upload()
    text = uniform_text(30)
    first = build_pipeline(FakeAnalysisService([succeeded(text)])).ingest(document.id)
    assert first.status == "completed"

    second = build_pipeline(FakeAnalysisService([succeeded(text)])).ingest(document.id)
    assert second.status == "failed"
    assert second.stage is IngestStage.PERSISTING
    assert "Failed to store chunks" in second.error

    repository.delete_chunks(document.id)
    third = build_pipeline(FakeAnalysisService([succeeded(text)])).ingest(document.id)
    assert third.status == "completed"
    assert repository.count_chunks(document.id) == third.chunk_count == 1
    assert repository.get_document(document.id).processing_error is None


def test_extracted_text_is_truncated_for_storage(upload, build_pipeline, repository, settings, uniform_text) -> None:
    settings.extracted_text_ceiling = 100
    document = upload()
    text = uniform_text(40)
    build_pipeline(FakeAnalysisService([succeeded(text)])).ingest(document.id)

    stored = repository.get_document(document.id)
    assert stored.extracted_text == text[:100] + "...[truncated]"
    assert stored.metadata["text_length"] == len(text)


def test_unknown_document_raises(build_pipeline) -> None:
    with pytest.raises(DocumentNotFound):
        build_pipeline(FakeAnalysisService()).ingest("doc_missing")


def test_ingest_many_reports_stats(upload, build_pipeline, uniform_text) -> None:
    good = upload(name="good.pdf")
    bad = upload(name="bad.txt", media_type="text/plain")
    pipeline = build_pipeline(FakeAnalysisService([succeeded(uniform_text(20))]))

    payload = pipeline.ingest_many([good.id, bad.id])

    assert payload["stats"] == {"completed": 1, "failed": 1, "limited": 0, "chunks": 1}
    assert [result["status"] for result in payload["results"]] == ["completed", "failed"]


def test_unexpected_error_marks_failed_and_propagates(
    upload, build_pipeline, repository, blob_store, monkeypatch
) -> None:
    document = upload()

    def explode(_location: str) -> bytes:
        raise RuntimeError("disk controller fault")

    monkeypatch.setattr(blob_store, "fetch", explode)

    with pytest.raises(RuntimeError, match="disk controller fault"):
        build_pipeline(FakeAnalysisService()).ingest(document.id)

    stored = repository.get_document(document.id)
    assert stored.processing_status is DocumentStatus.FAILED
    assert stored.processing_error == "Unexpected processing error: disk controller fault"
