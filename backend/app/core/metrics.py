"""Prometheus metric helpers."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "workshop_requests_total",
    "HTTP requests processed by the API",
    ("method", "path", "status"),
)

REQUEST_LATENCY = Histogram(
    "workshop_request_latency_seconds",
    "Latency of HTTP requests processed by the API",
    ("method", "path"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

INGEST_RESULTS = Counter(
    "workshop_ingest_results_total",
    "Asset ingestion runs by outcome",
    ("status",),
)

INGEST_STAGE_LATENCY = Histogram(
    "workshop_ingest_stage_seconds",
    "Duration of individual ingestion stages",
    ("stage",),
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

INGEST_CHUNKS = Counter(
    "workshop_ingest_chunks_total",
    "Chunks written by the ingestion pipeline",
)


def record_request(method: str, path: str, status_code: int, duration: float) -> None:
    """Record counters and histograms for a processed HTTP request."""

    REQUEST_COUNT.labels(method, path, str(status_code)).inc()
    REQUEST_LATENCY.labels(method, path).observe(duration)


def record_ingest_result(status: str, chunks: int = 0) -> None:
    """Count an ingestion outcome and the chunks it wrote."""

    INGEST_RESULTS.labels(status).inc()
    if chunks:
        INGEST_CHUNKS.inc(chunks)


@contextmanager
def track_stage(stage: str) -> Iterator[float]:
    """Measure the duration of one ingestion stage."""

    start = time.perf_counter()
    try:
        yield start
    finally:
        INGEST_STAGE_LATENCY.labels(stage).observe(time.perf_counter() - start)
