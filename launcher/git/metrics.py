from __future__ import annotations

from prometheus_client import Counter, Histogram


GIT_PROVIDER_REQUESTS = Counter(
    "git_provider_requests_total",
    "Total requests to Git hosting providers",
    labelnames=("provider", "operation", "result"),
)

GIT_PROVIDER_LATENCY = Histogram(
    "git_provider_request_latency_seconds",
    "Latency for Git provider requests",
    labelnames=("provider", "operation"),
    buckets=(0.05, 0.1, 0.2, 0.5, 1.0, 2.0, 5.0),
)

GIT_PROVIDER_ERRORS = Counter(
    "git_provider_errors_total",
    "Total errors from Git provider requests",
    labelnames=("provider", "operation", "code"),
)

