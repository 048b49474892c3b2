"""Client for the external document analysis service.

The service follows a submit-then-poll protocol: the document bytes are
POSTed once, the response carries an ``Operation-Location`` header, and that
URL is polled until the operation reports ``succeeded`` or ``failed``.
"""

from __future__ import annotations

import time
from typing import Any, Callable

import requests

from knowledge_ingest.core.config import Settings
from knowledge_ingest.core.errors import ExternalServiceError, ExtractionTimeout, UnsupportedMediaType
from knowledge_ingest.core.logging import get_logger
from knowledge_ingest.core.metrics import EXTRACTION_POLLS
from knowledge_ingest.ingest.types import ExtractionResult
from knowledge_ingest.utils.text import word_count

logger = get_logger(__name__)

SUPPORTED_MEDIA_TYPES = frozenset(
    {
        "application/pdf",
        "image/jpeg",
        "image/png",
        "image/bmp",
        "image/tiff",
        "image/heif",
    }
)

_TERMINAL_FAILURES = {"failed", "canceled"}
_IN_PROGRESS = {"notstarted", "running"}


def is_supported(media_type: str | None) -> bool:
    return (media_type or "").split(";")[0].strip().lower() in SUPPORTED_MEDIA_TYPES


class ExtractionClient:
    """Submit documents for analysis and wait for the full text."""

    def __init__(
        self,
        endpoint: str,
        api_key: str | None = None,
        *,
        model: str = "prebuilt-read",
        api_version: str = "2024-11-30",
        max_attempts: int = 60,
        poll_interval: float = 1.0,
        request_timeout: float = 30.0,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.endpoint = endpoint.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.api_version = api_version
        self.max_attempts = max_attempts
        self.poll_interval = poll_interval
        self.request_timeout = request_timeout
        self.session = session or requests.Session()
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, session: requests.Session | None = None) -> "ExtractionClient":
        return cls(
            settings.extraction_endpoint,
            settings.extraction_api_key,
            model=settings.extraction_model,
            api_version=settings.extraction_api_version,
            max_attempts=settings.extraction_max_attempts,
            poll_interval=settings.extraction_poll_interval,
            request_timeout=settings.extraction_request_timeout,
            session=session,
        )

    @property
    def analyze_url(self) -> str:
        return f"{self.endpoint}/documentModels/{self.model}:analyze?api-version={self.api_version}"

    def extract(self, data: bytes, media_type: str | None) -> ExtractionResult:
        """Return the full text and page count of ``data``."""
        if not is_supported(media_type):
            raise UnsupportedMediaType(media_type)
        operation_url = self._submit(data, media_type or "application/octet-stream")
        logger.info("Submitted %s bytes for analysis", len(data), extra={"ctx_operation": operation_url})

        for attempt in range(1, self.max_attempts + 1):
            self._sleep(self.poll_interval)
            payload = self._poll(operation_url)
            status = str(payload.get("status", "")).lower()
            if status == "succeeded":
                EXTRACTION_POLLS.observe(attempt)
                return _parse_result(payload, attempt)
            if status in _TERMINAL_FAILURES:
                EXTRACTION_POLLS.observe(attempt)
                raise ExternalServiceError(f"Document analysis failed: {_error_detail(payload)}")
            if status not in _IN_PROGRESS:
                logger.debug("Unexpected analysis status %r on attempt %s", status, attempt)

        raise ExtractionTimeout(self.max_attempts)

    def _submit(self, data: bytes, media_type: str) -> str:
        try:
            response = self.session.post(
                self.analyze_url,
                data=data,
                headers=self._headers({"Content-Type": media_type}),
                timeout=self.request_timeout,
            )
        except requests.RequestException as exc:
            raise ExternalServiceError(f"Document analysis request failed: {exc}", cause=exc) from exc
        if not response.ok:
            raise ExternalServiceError(
                f"Document analysis submission rejected ({response.status_code}): {_response_detail(response)}",
                status_code=response.status_code,
            )
        operation_url = response.headers.get("Operation-Location")
        if not operation_url:
            raise ExternalServiceError("Document analysis response did not include an operation location")
        return operation_url

    def _poll(self, operation_url: str) -> dict[str, Any]:
        try:
            response = self.session.get(operation_url, headers=self._headers(), timeout=self.request_timeout)
        except requests.RequestException as exc:
            raise ExternalServiceError(f"Document analysis polling failed: {exc}", cause=exc) from exc
        if not response.ok:
            raise ExternalServiceError(
                f"Document analysis polling rejected ({response.status_code}): {_response_detail(response)}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ExternalServiceError("Document analysis returned malformed JSON", cause=exc) from exc
        if not isinstance(payload, dict):
            raise ExternalServiceError("Document analysis returned an unexpected payload")
        return payload

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.api_key:
            headers["Ocp-Apim-Subscription-Key"] = self.api_key
        if extra:
            headers.update(extra)
        return headers


def _parse_result(payload: dict[str, Any], attempts: int) -> ExtractionResult:
    result = payload.get("analyzeResult") or {}
    text = result.get("content") or ""
    pages = result.get("pages")
    page_count = len(pages) if isinstance(pages, list) and pages else 1
    return ExtractionResult(
        status="succeeded",
        text=text,
        page_count=page_count,
        word_count=word_count(text),
        attempts=attempts,
    )


def _error_detail(payload: dict[str, Any]) -> str:
    error = payload.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or error.get("code") or "unknown error")
    if error:
        return str(error)
    return "unknown error"


def _response_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message") or body["error"])
    return str(body)[:200]


__all__ = ["ExtractionClient", "SUPPORTED_MEDIA_TYPES", "is_supported"]
