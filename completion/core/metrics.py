"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own
the behaviour import and increment them.  Values are scraped from
``GET /metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Completion metrics
# ---------------------------------------------------------------------------

AGGREGATIONS = Counter(
    "completion_aggregations_total",
    "Completion aggregations by outcome",
    # not_applicable|no_criteria|incomplete|complete|already_complete|failed
    ["result"],
)

COURSE_COMPLETIONS = Counter(
    "course_completions_total",
    "Completion records that transitioned from incomplete to complete",
)

RECORDS_CREATED = Counter(
    "completion_records_created_total",
    "Completion records inserted",
    ["source"],  # "single" or "bulk"
)

NOTIFICATION_FAILURES = Counter(
    "completion_notification_failures_total",
    "Course-completed notifications that could not be enqueued",
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
