"""Test fixtures for the ingestion service."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from knowledge_ingest.core.config import Settings  # noqa: E402
from knowledge_ingest.db.repository import DocumentRepository  # noqa: E402
from knowledge_ingest.db.sqlite import SQLiteDatabase  # noqa: E402
from knowledge_ingest.storage.blobs import BlobStore  # noqa: E402


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("KNGI_DB_PATH", str(tmp_path / "ingest.db"))
    monkeypatch.setenv("KNGI_STORAGE_ROOT", str(tmp_path / "objects"))
    monkeypatch.delenv("KNGI_CONFIG", raising=False)

    from knowledge_ingest.api import dependencies as deps
    from knowledge_ingest.core.config import get_settings

    def _clear() -> None:
        get_settings.cache_clear()
        deps.get_app_settings.cache_clear()
        if deps._DB is not None:
            deps._DB.close()
        deps._DB = None
        deps._BLOB_STORE = None
        deps._EXTRACTION_CLIENT = None
        deps._PIPELINE = None

    _clear()
    yield
    _clear()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        db_path=tmp_path / "pipeline.db",
        storage_root=tmp_path / "blobs",
        extraction_endpoint="https://analysis.test",
        extraction_poll_interval=0,
        extraction_max_attempts=5,
    )


@pytest.fixture
def database(settings: Settings) -> SQLiteDatabase:
    db = SQLiteDatabase(settings.db_path)
    db.ensure_schema()
    yield db
    db.close()


@pytest.fixture
def repository(database: SQLiteDatabase) -> DocumentRepository:
    return DocumentRepository(database)


@pytest.fixture
def blob_store(settings: Settings) -> BlobStore:
    return BlobStore(settings.storage_root)


def make_text(sentences: int, words_per_sentence: int = 10) -> str:
    """Uniform text: every sentence has exactly ``words_per_sentence`` words."""
    filler = ["alpha", "beta", "gamma", "delta", "epsilon", "zeta", "eta", "theta", "iota", "kappa"]
    units = []
    for index in range(sentences):
        words = [f"s{index}"] + [filler[i % len(filler)] for i in range(words_per_sentence - 1)]
        units.append(" ".join(words) + ".")
    return " ".join(units)


@pytest.fixture(scope="session")
def uniform_text():
    return make_text
