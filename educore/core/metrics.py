"""
Prometheus metrics for monitoring.

Metrics collected:
- HTTP request duration, count and in-flight gauge
- Login and session validation outcomes
- Tenant status transitions
- Quota decisions on the student admission path
"""

import time
from typing import Callable

from fastapi import Request
from prometheus_client import Counter, Gauge, Histogram, Info


# Application info
app_info = Info("educore_app", "EduCore application information")

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method"],
)

# Auth metrics
logins_total = Counter(
    "educore_logins_total",
    "Login attempts by outcome",
    ["outcome"],
)

session_validations_total = Counter(
    "educore_session_validations_total",
    "Session token validations by outcome",
    ["outcome"],
)

# Tenant lifecycle metrics
tenant_registrations_total = Counter(
    "educore_tenant_registrations_total",
    "Tenant registrations by plan and entry status",
    ["plan", "status"],
)

tenant_transitions_total = Counter(
    "educore_tenant_transitions_total",
    "Tenant status transitions",
    ["operation", "outcome"],
)

# Quota metrics
quota_decisions_total = Counter(
    "educore_quota_decisions_total",
    "Student admission decisions",
    ["decision"],
)


def _endpoint_label(request: Request) -> str:
    """Use the route template so tenant ids don't explode label cardinality."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


async def track_http_metrics(request: Request, call_next: Callable):
    """
    Middleware to track HTTP metrics.

    Records:
    - Request count by endpoint and status
    - Request duration histogram
    - Requests in progress gauge
    """
    method = request.method

    http_requests_in_progress.labels(method=method).inc()
    start_time = time.perf_counter()

    try:
        response = await call_next(request)

        duration = time.perf_counter() - start_time
        endpoint = _endpoint_label(request)

        http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint,
        ).observe(duration)

        http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        return response

    finally:
        http_requests_in_progress.labels(method=method).dec()
