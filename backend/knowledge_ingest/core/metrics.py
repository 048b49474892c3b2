"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

INGEST_RUNS = Counter(
    "kngi_ingest_runs_total",
    "Ingestion runs by terminal status",
    labelnames=("status",),
    registry=REGISTRY,
)

INGEST_DURATION = Histogram(
    "kngi_ingest_duration_seconds",
    "Wall time of a single ingestion run",
    registry=REGISTRY,
)

CHUNKS_CREATED = Counter(
    "kngi_chunks_created_total",
    "Chunks persisted by ingestion runs",
    registry=REGISTRY,
)

EXTRACTION_POLLS = Histogram(
    "kngi_extraction_poll_attempts",
    "Polling attempts needed for an extraction operation to finish",
    buckets=(1, 2, 5, 10, 20, 30, 60, 120),
    registry=REGISTRY,
)

COVERAGE_RATIO = Histogram(
    "kngi_coverage_ratio",
    "Word coverage of chunk sets relative to extracted text",
    buckets=(0.5, 0.8, 0.9, 0.95, 1.0, 1.05, 1.1, 1.25, 1.5),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "INGEST_RUNS",
    "INGEST_DURATION",
    "CHUNKS_CREATED",
    "EXTRACTION_POLLS",
    "COVERAGE_RATIO",
    "metrics_response",
]
