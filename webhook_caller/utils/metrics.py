"""
Prometheus metrics for the webhook caller service
Provides HTTP request metrics, webhook counters, and the metrics endpoint
"""

import os
from prometheus_client import Counter, Histogram, Gauge, Info, CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response


APP_INFO = Info("webhook_caller_app", "Application information")
APP_INFO.info({
    "version": os.getenv("APP_VERSION", "0.1.0"),
    "service": "webhook-caller"
})

# HTTP Request Metrics (low cardinality labels)
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "route", "status_code"]
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "route"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

HTTP_REQUESTS_IN_FLIGHT = Gauge(
    "http_requests_in_flight",
    "HTTP requests currently being processed",
    ["route"]
)

# Webhook Metrics
WEBHOOK_CALLS_TOTAL = Counter(
    "webhook_calls_total",
    "Webhook dispatch attempts by outcome",
    ["outcome"]  # success / destination_error / timeout / delivery_failed
)

WEBHOOK_REJECTIONS_TOTAL = Counter(
    "webhook_rejections_total",
    "Webhook calls rejected before any network attempt",
    ["reason"]  # error code
)

WEBHOOK_DELIVERY_DURATION_SECONDS = Histogram(
    "webhook_delivery_duration_seconds",
    "Outbound webhook call duration",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0]
)

# Error Metrics
ERRORS_TOTAL = Counter(
    "errors_total",
    "Total errors by type",
    ["error_type", "component"]
)


def metrics_endpoint(enabled: bool = True) -> Response:
    """
    Prometheus metrics endpoint

    Args:
        enabled: Whether metrics exposure is switched on

    Returns:
        Response with Prometheus metrics in text format
    """
    if not enabled:
        return Response("Metrics disabled", status_code=404)

    return Response(
        generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0"
        }
    )


def record_http_request(method: str, route: str, status_code: int, duration_seconds: float):
    """
    Record HTTP request metrics

    Args:
        method: HTTP method
        route: Route template (not full URL for low cardinality)
        status_code: HTTP status code
        duration_seconds: Request duration in seconds
    """
    HTTP_REQUESTS_TOTAL.labels(
        method=method,
        route=route,
        status_code=str(status_code)
    ).inc()

    HTTP_REQUEST_DURATION_SECONDS.labels(
        method=method,
        route=route
    ).observe(duration_seconds)


def record_webhook_call(outcome: str, duration_seconds: float):
    """Record a completed dispatch attempt"""
    WEBHOOK_CALLS_TOTAL.labels(outcome=outcome).inc()
    WEBHOOK_DELIVERY_DURATION_SECONDS.observe(duration_seconds)


def record_webhook_rejection(reason: str):
    """Record a call rejected at one of the gates"""
    WEBHOOK_REJECTIONS_TOTAL.labels(reason=reason).inc()


def record_error(error_type: str, component: str):
    """
    Record application error

    Args:
        error_type: Type of error
        component: Component where error occurred
    """
    ERRORS_TOTAL.labels(
        error_type=error_type,
        component=component
    ).inc()
