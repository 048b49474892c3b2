"""Data access for documents and their chunks."""

from __future__ import annotations

import sqlite3
from typing import Any, Iterable, Mapping

import orjson

from knowledge_ingest.core.errors import DocumentNotFound, PersistenceError
from knowledge_ingest.db.sqlite import SQLiteDatabase
from knowledge_ingest.models.entities import Chunk, Document, DocumentStatus
from knowledge_ingest.utils.ids import new_id
from knowledge_ingest.utils.time import minutes_ago_ms, now_ms

_DOCUMENT_COLUMNS = (
    "id, user_id, original_name, storage_path, file_type, file_size, processing_status, "
    "processing_error, extracted_text, summary, metadata_json, uploaded_at, updated_at"
)

STALE_ERROR = "Processing timeout - document may be too large or service unavailable"
RECENT_WINDOW_MINUTES = 24 * 60


class DocumentRepository:
    """Reads and writes ``documents`` and ``chunks`` rows."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    # Documents --------------------------------------------------------

    def create_document(
        self,
        user_id: str,
        original_name: str,
        storage_path: str,
        file_type: str,
        file_size: int,
        metadata: Mapping[str, Any] | None = None,
        document_id: str | None = None,
    ) -> Document:
        document_id = document_id or new_id("doc")
        now = now_ms()
        try:
            with self.db.transaction() as cursor:
                cursor.execute(
                    f"""
                    INSERT INTO documents ({_DOCUMENT_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, NULL, NULL, NULL, ?, ?, ?)
                    """,
                    [
                        document_id,
                        user_id,
                        original_name,
                        storage_path,
                        file_type,
                        file_size,
                        DocumentStatus.PENDING.value,
                        _dumps(metadata or {}),
                        now,
                        now,
                    ],
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to create document: {exc}", cause=exc) from exc
        return self.get_document(document_id)

    def get_document(self, document_id: str) -> Document:
        row = self.db.query_one(f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?", [document_id])
        if row is None:
            raise DocumentNotFound(document_id)
        return _row_to_document(row)

    def list_documents(self, user_id: str | None = None) -> list[Document]:
        if user_id:
            rows = self.db.query(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE user_id = ? ORDER BY uploaded_at DESC",
                [user_id],
            )
        else:
            rows = self.db.query(f"SELECT {_DOCUMENT_COLUMNS} FROM documents ORDER BY uploaded_at DESC")
        return [_row_to_document(row) for row in rows]

    def mark_processing(self, document_id: str) -> None:
        """Start a new attempt; clears the error left by a previous one."""
        self._execute_update(
            "UPDATE documents SET processing_status = ?, processing_error = NULL, updated_at = ? WHERE id = ?",
            [DocumentStatus.PROCESSING.value, now_ms(), document_id],
            document_id,
        )

    def update_document(
        self,
        document_id: str,
        status: DocumentStatus,
        *,
        summary: str | None = None,
        error_message: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        extracted_text: str | None = None,
    ) -> None:
        """Write the terminal record of an ingestion attempt in one statement."""
        if status is DocumentStatus.FAILED and not error_message:
            raise ValueError("failed documents require an error message")
        assignments = ["processing_status = ?", "processing_error = ?", "updated_at = ?"]
        params: list[Any] = [status.value, error_message, now_ms()]
        if summary is not None:
            assignments.append("summary = ?")
            params.append(summary)
        if metadata is not None:
            assignments.append("metadata_json = ?")
            params.append(_dumps(metadata))
        if extracted_text is not None:
            assignments.append("extracted_text = ?")
            params.append(extracted_text)
        params.append(document_id)
        self._execute_update(f"UPDATE documents SET {', '.join(assignments)} WHERE id = ?", params, document_id)

    def fail_stale_documents(self, older_than_ms: int, user_id: str | None = None) -> list[str]:
        """Fail pending/processing documents not touched since ``older_than_ms``."""
        sql = "SELECT id FROM documents WHERE processing_status IN (?, ?) AND updated_at < ?"
        params: list[Any] = [DocumentStatus.PENDING.value, DocumentStatus.PROCESSING.value, older_than_ms]
        if user_id:
            sql += " AND user_id = ?"
            params.append(user_id)
        stale_ids = [row["id"] for row in self.db.query(sql, params)]
        if not stale_ids:
            return []
        placeholders = ",".join("?" for _ in stale_ids)
        try:
            with self.db.transaction() as cursor:
                cursor.execute(
                    f"UPDATE documents SET processing_status = ?, processing_error = ?, updated_at = ? "
                    f"WHERE id IN ({placeholders})",
                    [DocumentStatus.FAILED.value, STALE_ERROR, now_ms(), *stale_ids],
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to mark stale documents: {exc}", cause=exc) from exc
        return stale_ids

    def processing_stats(self, user_id: str | None = None) -> dict[str, Any]:
        recent_since = minutes_ago_ms(RECENT_WINDOW_MINUTES)
        sql = (
            "SELECT processing_status, COUNT(*) AS count, COALESCE(SUM(file_size), 0) AS bytes, "
            "SUM(CASE WHEN uploaded_at >= ? THEN 1 ELSE 0 END) AS recent FROM documents"
        )
        params: list[Any] = [recent_since]
        if user_id:
            sql += " WHERE user_id = ?"
            params.append(user_id)
        sql += " GROUP BY processing_status"
        by_status = {status.value: 0 for status in DocumentStatus}
        total_bytes = 0
        recent_count = 0
        for row in self.db.query(sql, params):
            by_status[row["processing_status"]] = int(row["count"])
            total_bytes += int(row["bytes"])
            recent_count += int(row["recent"])
        return {
            "total_documents": sum(by_status.values()),
            "total_bytes": total_bytes,
            "by_status": by_status,
            "recent_count": recent_count,
        }

    # Chunks -----------------------------------------------------------

    def insert_chunks(self, batch: Iterable[Mapping[str, Any]]) -> int:
        """Insert a chunk batch in a single transaction."""
        now = now_ms()
        rows = [
            (
                new_id("chk"),
                chunk["document_id"],
                chunk["chunk_index"],
                chunk["content"],
                chunk["word_count"],
                _dumps(chunk.get("metadata") or {}),
                now,
            )
            for chunk in batch
        ]
        if not rows:
            return 0
        try:
            with self.db.transaction() as cursor:
                cursor.executemany(
                    """
                    INSERT INTO chunks (id, document_id, chunk_index, content, word_count, metadata_json, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to store chunks: {exc}", cause=exc) from exc
        return len(rows)

    def list_chunks(self, document_id: str) -> list[Chunk]:
        rows = self.db.query(
            """
            SELECT id, document_id, chunk_index, content, word_count, metadata_json, created_at
            FROM chunks WHERE document_id = ? ORDER BY chunk_index
            """,
            [document_id],
        )
        return [
            Chunk(
                id=row["id"],
                document_id=row["document_id"],
                chunk_index=row["chunk_index"],
                content=row["content"],
                word_count=row["word_count"],
                metadata=orjson.loads(row["metadata_json"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def count_chunks(self, document_id: str) -> int:
        row = self.db.query_one("SELECT COUNT(*) AS count FROM chunks WHERE document_id = ?", [document_id])
        return int(row["count"]) if row else 0

    def delete_chunks(self, document_id: str) -> int:
        """Remove a document's chunk set; required before re-ingesting it."""
        try:
            with self.db.transaction() as cursor:
                cursor.execute("DELETE FROM chunks WHERE document_id = ?", [document_id])
                return cursor.rowcount
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to delete chunks: {exc}", cause=exc) from exc

    def _execute_update(self, sql: str, params: list[Any], document_id: str) -> None:
        try:
            with self.db.transaction() as cursor:
                cursor.execute(sql, params)
                updated = cursor.rowcount
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to update document: {exc}", cause=exc) from exc
        if updated == 0:
            raise DocumentNotFound(document_id)


def _dumps(value: Mapping[str, Any]) -> str:
    return orjson.dumps(dict(value)).decode("utf-8")


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        user_id=row["user_id"],
        original_name=row["original_name"],
        storage_path=row["storage_path"],
        file_type=row["file_type"],
        file_size=row["file_size"],
        processing_status=DocumentStatus(row["processing_status"]),
        processing_error=row["processing_error"],
        extracted_text=row["extracted_text"],
        summary=row["summary"],
        metadata=orjson.loads(row["metadata_json"] or "{}"),
        uploaded_at=row["uploaded_at"],
        updated_at=row["updated_at"],
    )


__all__ = ["DocumentRepository", "STALE_ERROR"]
