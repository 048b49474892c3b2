"""Local filesystem object store for uploaded document bytes."""

from __future__ import annotations

from pathlib import Path

from knowledge_ingest.core.errors import StorageUnavailable


class BlobStore:
    """Stores objects under ``root`` addressed by relative storage locations."""

    def __init__(self, root: Path) -> None:
        self.root = root.expanduser()

    def fetch(self, storage_location: str) -> bytes:
        path = self._resolve(storage_location)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageUnavailable(f"Failed to download document: {storage_location}", cause=exc) from exc

    def put(self, storage_location: str, data: bytes) -> Path:
        path = self._resolve(storage_location)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageUnavailable(f"Failed to store document: {storage_location}", cause=exc) from exc
        return path

    def delete(self, storage_location: str) -> bool:
        path = self._resolve(storage_location)
        if not path.exists():
            return False
        path.unlink()
        return True

    def _resolve(self, storage_location: str) -> Path:
        root = self.root.resolve()
        candidate = (root / storage_location.lstrip("/")).resolve()
        if candidate != root and root not in candidate.parents:
            raise StorageUnavailable(f"Storage location escapes object store: {storage_location}")
        return candidate


__all__ = ["BlobStore"]
