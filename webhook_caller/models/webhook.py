"""
Webhook request, validation and delivery models
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


class WebhookRequest(BaseModel):
    """Body of ``POST /webhook-caller``"""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "webhook_url": "https://hooks.slack.com/services/T000/B000/XXXX",
                "payload": {"text": "VAT return filed"},
                "timeout_ms": 10000,
            }
        }
    )

    webhook_url: StrictStr = Field(..., description="Absolute https destination URL")
    payload: Any = Field(..., description="Opaque JSON forwarded verbatim")
    timeout_ms: Optional[StrictInt] = Field(
        None, gt=0, description="Requested timeout, clamped to 30000"
    )


@dataclass(frozen=True)
class ValidationVerdict:
    """Outcome of destination validation"""
    valid: bool
    reason: Optional[str] = None
    url: Optional[httpx.URL] = None

    @classmethod
    def reject(cls, reason: str) -> "ValidationVerdict":
        return cls(valid=False, reason=reason)

    @classmethod
    def accept(cls, url: httpx.URL) -> "ValidationVerdict":
        return cls(valid=True, url=url)


class DeliveryFailureKind(str, Enum):
    """Why a dispatch attempt produced no response"""
    TIMEOUT = "timeout"
    DELIVERY_FAILED = "delivery_failed"


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of a single dispatch attempt"""
    delivered: bool
    applied_timeout_ms: int
    duration_ms: float
    http_status: Optional[int] = None
    failure_kind: Optional[DeliveryFailureKind] = None

    @property
    def success(self) -> bool:
        """True iff the destination answered with a 2xx status"""
        return (
            self.delivered
            and self.http_status is not None
            and 200 <= self.http_status < 300
        )


class WebhookCallResponse(BaseModel):
    """Body returned once a delivery attempt completed"""

    success: bool = Field(..., description="Destination responded with 2xx")
    status: int = Field(..., description="Destination HTTP status code")
    message: str

    @classmethod
    def from_outcome(cls, outcome: DeliveryOutcome) -> "WebhookCallResponse":
        return cls(
            success=outcome.success,
            status=outcome.http_status,
            message=(
                "Webhook delivered successfully"
                if outcome.success
                else "Webhook returned an error"
            ),
        )
