from time import perf_counter
from typing import Iterable

from prometheus_client import Counter, Histogram

# ---- METRICS (names are Prometheus-safe; units are in names) ----

REQUESTS_TOTAL = Counter(
    "ranttrack_requests_total",
    "API requests by route and final status",
    labelnames=("route", "status"),
)

SYMPTOMS_EXTRACTED = Counter(
    "symptoms_extracted_total",
    "Symptom records produced, by match method",
    labelnames=("method",),
)

DATE_SEGMENTS = Counter(
    "date_segments_total",
    "Date segments produced by segmentation",
    labelnames=("explicit",),
)

DICTIONARY_UPDATES = Counter(
    "dictionary_updates_total",
    "Custom dictionary changes by outcome",
    labelnames=("outcome",),
)

EXTRACTION_LATENCY_MS = Histogram(
    "extraction_latency_ms",
    "Latency of extraction/segmentation endpoints in milliseconds",
    # Rule matching is CPU-only; most calls finish well under 50ms
    buckets=(1, 2, 5, 10, 25, 50, 100, 250, 500, 1000),
)

ERRORS_TOTAL = Counter(
    "errors_total",
    "Count of errors by type",
    labelnames=("type",),
)

# ---- HELPERS ----

def timer_start() -> float:
    return perf_counter()

def timer_observe_ms(start: float) -> float:
    elapsed_ms = (perf_counter() - start) * 1000.0
    EXTRACTION_LATENCY_MS.observe(elapsed_ms)
    return elapsed_ms

def record_request(route: str, status: str) -> None:
    REQUESTS_TOTAL.labels(route=route, status=status).inc()

def record_symptoms(methods: Iterable[str]) -> None:
    for m in methods:
        SYMPTOMS_EXTRACTED.labels(method=m).inc()

def record_segments(explicit_flags: Iterable[bool]) -> None:
    for flag in explicit_flags:
        DATE_SEGMENTS.labels(explicit=str(bool(flag)).lower()).inc()

def record_dictionary_update(outcome: str) -> None:
    DICTIONARY_UPDATES.labels(outcome=outcome).inc()

def record_error(err_type: str) -> None:
    ERRORS_TOTAL.labels(type=err_type).inc()
