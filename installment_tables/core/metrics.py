"""Prometheus metrics for the Installment Tables service.

Metrics are organized into two categories:

Business Metrics (for Product/Finance):
- installments_submissions_total: Plan submissions by outcome
- installments_invalid_discount_rows_total: Rows flagged by the discount gate

Technical Metrics (for Engineering/SRE):
- installments_gateway_requests_total: Plans API calls by operation/status
- installments_gateway_latency_seconds: Plans API latency
- installments_http_requests_total: HTTP requests by endpoint/status
- installments_http_request_latency_seconds: HTTP latency by endpoint
"""

import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import Counter, Histogram, REGISTRY, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST


# =============================================================================
# Business Metrics
# =============================================================================

submissions_total = Counter(
    "installments_submissions_total",
    "Total number of plan submissions",
    ["outcome"],  # saved, blocked, rejected, failed
)

invalid_discount_rows = Counter(
    "installments_invalid_discount_rows_total",
    "Rows whose discount exceeded the effective value at submit time",
)


# =============================================================================
# Technical Metrics
# =============================================================================

gateway_requests_total = Counter(
    "installments_gateway_requests_total",
    "Total Plans API requests by operation and status",
    ["operation", "status"],  # status: success, not_found, invalid, error, timeout
)

gateway_latency = Histogram(
    "installments_gateway_latency_seconds",
    "Plans API request latency in seconds",
    ["operation"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

http_requests_total = Counter(
    "installments_http_requests_total",
    "Total HTTP requests by endpoint and status",
    ["method", "endpoint", "status"],
)

http_request_latency = Histogram(
    "installments_http_request_latency_seconds",
    "HTTP request latency by endpoint",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_submission(outcome: str, invalid_rows: int = 0) -> None:
    """Record a plan submission attempt."""
    submissions_total.labels(outcome=outcome).inc()
    if invalid_rows:
        invalid_discount_rows.inc(invalid_rows)


@contextmanager
def track_gateway_latency(operation: str) -> Generator[None, None, None]:
    """Context manager to track Plans API latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        duration = time.perf_counter() - start
        gateway_latency.labels(operation=operation).observe(duration)


def record_gateway_request(operation: str, status: str) -> None:
    """Record the outcome of a Plans API request."""
    gateway_requests_total.labels(operation=operation, status=status).inc()


def record_http_request(method: str, endpoint: str, status: int, duration: float) -> None:
    """Record an HTTP request."""
    http_requests_total.labels(method=method, endpoint=endpoint, status=str(status)).inc()
    http_request_latency.labels(method=method, endpoint=endpoint).observe(duration)


def get_metrics() -> bytes:
    """Get current metrics in Prometheus format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST
