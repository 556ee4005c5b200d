"""
Error models for the webhook caller service
Defines error codes, the exception taxonomy, and the rejection envelope
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for consistent error classification"""
    UNAUTHORIZED = "UNAUTHORIZED"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_DESTINATION = "INVALID_DESTINATION"
    TIMEOUT = "TIMEOUT"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


STATUS_CODES: Dict[ErrorCode, int] = {
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.METHOD_NOT_ALLOWED: 405,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.INVALID_DESTINATION: 400,
    ErrorCode.TIMEOUT: 504,
    ErrorCode.DELIVERY_FAILED: 502,
    ErrorCode.INTERNAL_ERROR: 500,
}


class ErrorResponse(BaseModel):
    """Body of every rejected request"""
    success: bool = Field(False, description="Always false for rejections")
    error: str = Field(..., description="Short human-readable reason")

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": False,
                "error": "Only HTTPS URLs are allowed",
            }
        }
    }


class WebhookCallerError(Exception):
    """Base class for every rejection the guard can produce"""
    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None):
        self.message = message
        self.headers = headers or {}
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.code]

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(error=self.message)


class AuthnError(WebhookCallerError):
    """Missing, malformed or rejected credentials (401)"""
    code = ErrorCode.UNAUTHORIZED


class NotFoundError(WebhookCallerError):
    """No route for the requested path (404)"""
    code = ErrorCode.NOT_FOUND

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class MethodNotAllowedError(WebhookCallerError):
    """HTTP method other than POST/OPTIONS (405)"""
    code = ErrorCode.METHOD_NOT_ALLOWED

    def __init__(self, message: str = "Method not allowed", headers: Optional[Dict[str, str]] = None):
        super().__init__(message, headers=headers)


class RateLimitedError(WebhookCallerError):
    """Caller exceeded its fixed-window quota (429)"""
    code = ErrorCode.RATE_LIMITED

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        limit: Optional[int] = None,
        retry_after: Optional[int] = None,
    ):
        self.limit = limit
        self.retry_after = retry_after
        headers = {}
        if retry_after is not None:
            headers["Retry-After"] = str(retry_after)
        if limit is not None:
            headers["X-RateLimit-Limit"] = str(limit)
            headers["X-RateLimit-Remaining"] = "0"
        super().__init__(message, headers=headers)


class InvalidRequestError(WebhookCallerError):
    """Malformed body or missing required field (400)"""
    code = ErrorCode.INVALID_REQUEST

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class InvalidDestinationError(WebhookCallerError):
    """Webhook URL failed scheme, blocklist or allowlist checks (400)"""
    code = ErrorCode.INVALID_DESTINATION


class DeliveryTimeoutError(WebhookCallerError):
    """Destination did not answer within the applied timeout (504)"""
    code = ErrorCode.TIMEOUT

    def __init__(self, message: str = "Webhook request timed out"):
        super().__init__(message)


class DeliveryFailedError(WebhookCallerError):
    """Transport-level failure reaching the destination (502)"""
    code = ErrorCode.DELIVERY_FAILED

    def __init__(self, message: str = "Failed to deliver webhook"):
        super().__init__(message)
