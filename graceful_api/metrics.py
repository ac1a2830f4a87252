"""Prometheus metrics for the HTTP server and its drain lifecycle."""

from prometheus_client import Counter, Histogram, Gauge

# HTTP-level metrics (tracked via middleware)
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 60.0, 180.0, 300.0, 600.0],
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently being processed",
    ["method", "endpoint"],
)

# Drain lifecycle
HTTP_REQUESTS_REJECTED_TOTAL = Counter(
    "http_requests_rejected_total",
    "Requests rejected with 503 because the server is draining",
    ["endpoint"],
)

LONG_RUNNING_OUTCOMES_TOTAL = Counter(
    "long_running_outcomes_total",
    "Long-running requests by how their response was finalized",
    ["outcome"],  # completed, failed, suppressed
)

KNOWN_ENDPOINTS = frozenset({"/", "/health", "/long-running", "/metrics"})


def normalize_endpoint(path: str) -> str:
    """Collapse unknown paths into one label to avoid high cardinality.

    Examples:
        /health -> /health
        /wp-admin/setup.php -> /{unmatched}
    """
    if len(path) > 1:
        path = path.rstrip("/")
    return path if path in KNOWN_ENDPOINTS else "/{unmatched}"


def record_long_running_outcome(outcome: str) -> None:
    """Count how a long-running request ended: completed, failed or suppressed."""
    LONG_RUNNING_OUTCOMES_TOTAL.labels(outcome=outcome).inc()
