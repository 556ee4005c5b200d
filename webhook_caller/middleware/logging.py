"""
Logging middleware for the webhook caller service
Provides request/response logging, metrics collection, and correlation IDs
"""

import time
import os
from typing import Optional
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from ..utils.logger import log, new_request_id, redact_headers
from ..utils.metrics import HTTP_REQUESTS_IN_FLIGHT, record_http_request, record_error


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for structured request/response logging and metrics collection
    """

    def __init__(self, app, request_id_header: Optional[str] = None):
        super().__init__(app)
        self.request_id_header = request_id_header or os.getenv("REQUEST_ID_HEADER", "X-Request-ID")

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = new_request_id(request.headers.get(self.request_id_header))
        route_template = self._get_route_template(request)

        request.state.request_id = request_id
        request.state.start_time = time.perf_counter()

        self._log_request_start(request, request_id, route_template)

        HTTP_REQUESTS_IN_FLIGHT.labels(route=route_template).inc()

        try:
            response: Response = await call_next(request)

            duration_seconds = time.perf_counter() - request.state.start_time
            duration_ms = round(duration_seconds * 1000, 2)

            response.headers[self.request_id_header] = request_id

            record_http_request(
                request.method, route_template, response.status_code, duration_seconds
            )

            log.info(
                f"Request completed: {request.method} {route_template} -> {response.status_code} ({duration_ms}ms)",
                extra={
                    "event_type": "http_response",
                    "request_id": request_id,
                    "method": request.method,
                    "route": route_template,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                    "client_ip": get_client_ip(request),
                }
            )

            return response

        except Exception as e:
            duration_seconds = time.perf_counter() - request.state.start_time
            record_http_request(request.method, route_template, 500, duration_seconds)
            record_error("unhandled_exception", "http_middleware")

            log.error(
                f"Unhandled exception: {request.method} {route_template} -> 500",
                extra={
                    "event_type": "error_unhandled",
                    "request_id": request_id,
                    "method": request.method,
                    "route": route_template,
                    "error_type": type(e).__name__,
                },
                exc_info=e
            )
            raise

        finally:
            HTTP_REQUESTS_IN_FLIGHT.labels(route=route_template).dec()

    def _get_route_template(self, request: Request) -> str:
        """Route template for low-cardinality metrics"""
        route = request.scope.get("route")
        if route and hasattr(route, "path"):
            return route.path
        return request.url.path

    def _log_request_start(self, request: Request, request_id: str, route_template: str):
        safe_headers = redact_headers(dict(request.headers))

        log.info(
            f"Request started: {request.method} {route_template}",
            extra={
                "event_type": "http_request",
                "request_id": request_id,
                "method": request.method,
                "route": route_template,
                "path": str(request.url.path),
                "headers": safe_headers,
                "client_ip": get_client_ip(request),
                "user_agent": request.headers.get("user-agent"),
            }
        )


def get_client_ip(request: Request) -> Optional[str]:
    """
    Extract client IP from request headers

    Args:
        request: HTTP request

    Returns:
        Client IP address
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    client = request.client
    return client.host if client else None
