"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from knowledge_ingest.core.config import Settings, get_settings
from knowledge_ingest.db.repository import DocumentRepository
from knowledge_ingest.db.sqlite import SQLiteDatabase
from knowledge_ingest.ingest.extraction import ExtractionClient
from knowledge_ingest.ingest.pipeline import IngestPipeline
from knowledge_ingest.storage.blobs import BlobStore

_DB: SQLiteDatabase | None = None
_BLOB_STORE: BlobStore | None = None
_EXTRACTION_CLIENT: ExtractionClient | None = None
_PIPELINE: IngestPipeline | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        settings = get_app_settings()
        db = SQLiteDatabase(settings.db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_repository() -> DocumentRepository:
    return DocumentRepository(get_database())


def get_blob_store() -> BlobStore:
    global _BLOB_STORE
    if _BLOB_STORE is None:
        _BLOB_STORE = BlobStore(get_app_settings().storage_root)
    return _BLOB_STORE


def get_extraction_client() -> ExtractionClient:
    global _EXTRACTION_CLIENT
    if _EXTRACTION_CLIENT is None:
        _EXTRACTION_CLIENT = ExtractionClient.from_settings(get_app_settings())
    return _EXTRACTION_CLIENT


def get_ingest_pipeline() -> IngestPipeline:
    global _PIPELINE
    if _PIPELINE is None:
        _PIPELINE = IngestPipeline(
            repository=get_repository(),
            blob_store=get_blob_store(),
            extraction_client=get_extraction_client(),
            settings=get_app_settings(),
        )
    return _PIPELINE


__all__ = [
    "get_app_settings",
    "get_database",
    "get_repository",
    "get_blob_store",
    "get_extraction_client",
    "get_ingest_pipeline",
]
