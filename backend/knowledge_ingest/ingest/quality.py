"""Extraction quality heuristics and document summaries."""

from __future__ import annotations

from knowledge_ingest.core.logging import get_logger
from knowledge_ingest.ingest.types import QUALITY_GOOD, QUALITY_LIMITED, QualityAssessment, QualityConfig

logger = get_logger(__name__)

_KIND_LABELS = {
    "application/pdf": "PDF",
    "image/jpeg": "Image",
    "image/png": "Image",
    "image/bmp": "Image",
    "image/tiff": "Image",
    "image/heif": "Image",
}


def assess(
    text: str,
    page_count: int,
    config: QualityConfig | None = None,
    *,
    document_id: str | None = None,
) -> QualityAssessment:
    """Classify extraction quality from character density.

    Falling under ``page_count * min_chars_per_page`` only logs a warning;
    the document is ``limited`` when it has fewer than ``absolute_min_chars``
    characters overall.
    """
    config = config or QualityConfig()
    char_count = len(text)
    expected_min_chars = max(page_count, 1) * config.min_chars_per_page
    low_density = char_count < expected_min_chars
    if low_density:
        logger.warning(
            "Low text density: %s characters for %s pages (expected at least %s)",
            char_count,
            page_count,
            expected_min_chars,
            extra={
                "ctx_document_id": document_id,
                "ctx_char_count": char_count,
                "ctx_expected_min_chars": expected_min_chars,
            },
        )
    quality = QUALITY_LIMITED if char_count < config.absolute_min_chars else QUALITY_GOOD
    return QualityAssessment(
        quality=quality,
        expected_min_chars=expected_min_chars,
        char_count=char_count,
        low_density=low_density,
    )


def document_kind(media_type: str | None) -> str:
    return _KIND_LABELS.get((media_type or "").lower(), "Uploaded")


def limited_summary(name: str, media_type: str | None) -> str:
    return (
        f'{document_kind(media_type)} document "{name}" processed with limited text extraction. '
        "Document may contain primarily images or have extraction issues."
    )


def preview_summary(name: str, media_type: str | None, text: str, page_count: int, preview_words: int = 300) -> str:
    words = text.split()
    preview = " ".join(words[:preview_words])
    ellipsis = "..." if len(words) > preview_words else ""
    pages = "page" if page_count == 1 else "pages"
    return (
        f'{document_kind(media_type)} document "{name}" ({page_count} {pages}) successfully processed. '
        f"Content preview: {preview}{ellipsis}"
    )


__all__ = [
    "QUALITY_GOOD",
    "QUALITY_LIMITED",
    "assess",
    "document_kind",
    "limited_summary",
    "preview_summary",
]
