"""
Rate limiting models and types for the webhook caller.
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


@dataclass
class RateLimitCounter:
    """Fixed-window counter for a single identity."""
    count: int
    window_reset_at: float  # clock value at which the window ends


class RateLimitConfig(BaseModel):
    """Configuration for fixed-window rate limiting."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "limit": 10,
                "window_seconds": 60,
            }
        },
    )

    limit: int = Field(10, ge=1, description="Calls allowed per window")
    window_seconds: float = Field(60, gt=0, description="Window length in seconds")


class RateLimitInfo(BaseModel):
    """Result of a rate limit check for one call."""

    allowed: bool = Field(..., description="Whether the call may proceed")
    limit: int = Field(..., description="Calls allowed per window")
    remaining: int = Field(..., description="Calls left in the current window")
    reset_in: float = Field(..., description="Seconds until the window resets")
    retry_after: Optional[int] = Field(
        None, description="Whole seconds to wait when throttled"
    )
