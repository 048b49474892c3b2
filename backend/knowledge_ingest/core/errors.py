"""Exception hierarchy for the ingestion pipeline.

Every failure that ends an ingestion run is an :class:`IngestionError`. The
orchestrator catches them, records ``str(exc)`` as the document's
``processing_error`` and never retries.
"""

from __future__ import annotations


class IngestionError(RuntimeError):
    """Base class for errors that terminate an ingestion run."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.__cause__ = cause


class UnsupportedMediaType(IngestionError):
    """The declared media type cannot be sent to the extraction service."""

    def __init__(self, media_type: str | None) -> None:
        super().__init__(f"Unsupported media type for extraction: {media_type or 'unknown'}")
        self.media_type = media_type


class ExternalServiceError(IngestionError):
    """The extraction service rejected the request or reported a failure."""

    def __init__(self, message: str, *, status_code: int | None = None, cause: Exception | None = None) -> None:
        super().__init__(message, cause=cause)
        self.status_code = status_code


class ExtractionTimeout(IngestionError):
    """The extraction operation did not finish within the polling budget."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Document analysis did not complete after {attempts} polling attempts")
        self.attempts = attempts


class StorageUnavailable(IngestionError):
    """Document bytes could not be fetched from the object store."""


class PersistenceError(IngestionError):
    """Writing chunks or the document record failed."""


class DocumentNotFound(LookupError):
    """No document exists for the requested identifier."""

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


__all__ = [
    "IngestionError",
    "UnsupportedMediaType",
    "ExternalServiceError",
    "ExtractionTimeout",
    "StorageUnavailable",
    "PersistenceError",
    "DocumentNotFound",
]
