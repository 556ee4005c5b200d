"""
Error handling for the webhook caller service

Domain rejections and Starlette HTTP errors are turned into the
``{"success": false, "error": ...}`` envelope by exception handlers.
Anything else escaping a route is caught by ``ErrorMiddleware``, logged
with its traceback, and answered with a generic 500.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..models.errors import (
    ErrorCode,
    ErrorResponse,
    MethodNotAllowedError,
    NotFoundError,
    STATUS_CODES,
    WebhookCallerError,
)
from ..utils.logger import log, log_error
from ..utils.metrics import record_error

INTERNAL_ERROR_MESSAGE = "Internal server error"


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        content=ErrorResponse(error=message).model_dump(),
        status_code=status_code,
        headers=headers,
    )


async def webhook_error_handler(request: Request, exc: WebhookCallerError) -> JSONResponse:
    """Render a gate rejection or delivery failure"""
    log.info(
        f"Error response sent for {request.method} {request.url.path}",
        extra={
            "event_type": "error_response",
            "request_id": getattr(request.state, "request_id", None),
            "status_code": exc.status_code,
            "error_code": exc.code.value,
            "error_message": exc.message,
        }
    )
    return error_response(exc.status_code, exc.message, headers=exc.headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors (404, 405) through the error taxonomy"""
    headers = getattr(exc, "headers", None)
    if exc.status_code == 404:
        error = NotFoundError()
    elif exc.status_code == 405:
        # Starlette lists the permitted methods in an Allow header
        error = MethodNotAllowedError(headers=headers)
    else:
        return error_response(exc.status_code, str(exc.detail), headers=headers)
    return await webhook_error_handler(request, error)


class ErrorMiddleware(BaseHTTPMiddleware):
    """
    Last-resort handler for unexpected exceptions

    The response body never contains exception details.
    """

    def __init__(self, app: ASGIApp, request_id_header: str = "X-Request-ID"):
        super().__init__(app)
        self.request_id_header = request_id_header

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            request_id = getattr(request.state, "request_id", None)

            log_error(
                "unhandled_exception",
                f"Unhandled exception in {request.method} {request.url.path}",
                exception=exc,
                request_id=request_id,
                method=request.method,
                path=request.url.path,
            )
            record_error(ErrorCode.INTERNAL_ERROR.value, "middleware")

            headers = {self.request_id_header: request_id} if request_id else None
            return error_response(
                STATUS_CODES[ErrorCode.INTERNAL_ERROR], INTERNAL_ERROR_MESSAGE, headers=headers
            )
