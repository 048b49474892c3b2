"""Tests for document and chunk persistence."""

from __future__ import annotations

import pytest

from knowledge_ingest.core.errors import DocumentNotFound, PersistenceError
from knowledge_ingest.db.repository import STALE_ERROR
from knowledge_ingest.models.entities import DocumentStatus
from knowledge_ingest.utils.time import now_ms


def _create(repository, name: str = "a.pdf", user_id: str = "user-1", size: int = 10):
    return repository.create_document(
        user_id=user_id,
        original_name=name,
        storage_path=f"{user_id}/{name}",
        file_type="application/pdf",
        file_size=size,
    )


def test_new_documents_are_pending(repository) -> None:
    document = _create(repository)
    assert document.processing_status is DocumentStatus.PENDING
    assert document.metadata == {}
    assert repository.list_documents("user-1")[0].id == document.id
    assert repository.list_documents("someone-else") == []


def test_failed_update_requires_message(repository) -> None:
    document = _create(repository)
    with pytest.raises(ValueError):
        repository.update_document(document.id, DocumentStatus.FAILED)


def test_update_unknown_document(repository) -> None:
    with pytest.raises(DocumentNotFound):
        repository.update_document("doc_missing", DocumentStatus.COMPLETED, summary="done")


def test_chunk_batch_round_trip_and_delete(repository) -> None:
    document = _create(repository)
    batch = [
        {"document_id": document.id, "chunk_index": index, "content": f"chunk {index}", "word_count": 2, "metadata": {"is_final": index == 1}}
        for index in (1, 0)
    ]
    assert repository.insert_chunks(batch) == 2

    chunks = repository.list_chunks(document.id)
    assert [chunk.chunk_index for chunk in chunks] == [0, 1]
    assert chunks[1].metadata == {"is_final": True}

    assert repository.delete_chunks(document.id) == 2
    assert repository.count_chunks(document.id) == 0
    assert repository.delete_chunks(document.id) == 0


def test_chunk_batch_is_atomic(repository) -> None:
    document = _create(repository)
    batch = [
        {"document_id": document.id, "chunk_index": 0, "content": "first", "word_count": 1},
        {"document_id": document.id, "chunk_index": 0, "content": "duplicate", "word_count": 1},
    ]
    with pytest.raises(PersistenceError):
        repository.insert_chunks(batch)
    assert repository.count_chunks(document.id) == 0


def test_stale_documents_are_failed(repository) -> None:
    stuck = _create(repository, "stuck.pdf")
    running = _create(repository, "running.pdf")
    repository.mark_processing(running.id)
    done = _create(repository, "done.pdf")
    repository.update_document(done.id, DocumentStatus.COMPLETED, summary="ok")

    failed_ids = repository.fail_stale_documents(now_ms() + 1000)

    assert sorted(failed_ids) == sorted([stuck.id, running.id])
    assert repository.get_document(stuck.id).processing_error == STALE_ERROR
    assert repository.get_document(done.id).processing_status is DocumentStatus.COMPLETED
    assert repository.fail_stale_documents(now_ms() + 1000) == []


def test_recent_documents_are_not_stale(repository) -> None:
    _create(repository)
    assert repository.fail_stale_documents(now_ms() - 60_000) == []


def test_processing_stats(repository) -> None:
    first = _create(repository, "one.pdf", size=100)
    _create(repository, "two.pdf", size=50)
    _create(repository, "other.pdf", user_id="user-2", size=7)
    repository.update_document(first.id, DocumentStatus.FAILED, error_message="boom")

    stats = repository.processing_stats("user-1")

    assert stats["total_documents"] == 2
    assert stats["total_bytes"] == 150
    assert stats["by_status"] == {"pending": 1, "processing": 0, "completed": 0, "failed": 1}
    assert stats["recent_count"] == 2
    assert repository.processing_stats()["total_documents"] == 3


def _age(repository, document_id: str, *, uploaded_at: int, updated_at: int) -> None:
    with repository.db.transaction() as cursor:
        cursor.execute(
            "UPDATE documents SET uploaded_at = ?, updated_at = ? WHERE id = ?",
            [uploaded_at, updated_at, document_id],
        )


def test_old_upload_being_reprocessed_is_not_stale(repository) -> None:
    document = _create(repository)
    week_ago = now_ms() - 7 * 24 * 3_600_000
    _age(repository, document.id, uploaded_at=week_ago, updated_at=week_ago)
    repository.mark_processing(document.id)

    assert repository.fail_stale_documents(now_ms() - 60_000) == []
    assert repository.get_document(document.id).processing_status is DocumentStatus.PROCESSING


def test_recent_count_skips_old_uploads(repository) -> None:
    old = _create(repository, "old.pdf")
    _create(repository, "new.pdf")
    two_days_ago = now_ms() - 48 * 3_600_000
    _age(repository, old.id, uploaded_at=two_days_ago, updated_at=two_days_ago)

    stats = repository.processing_stats()

    assert stats["total_documents"] == 2
    assert stats["recent_count"] == 1
