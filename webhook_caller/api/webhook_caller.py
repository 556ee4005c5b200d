"""
Webhook caller endpoint

Gates run in a fixed order and the first failure ends the request:
authenticate, rate limit, parse body, validate destination, dispatch.
A completed attempt always answers 200; the ``success`` field tells
whether the destination itself accepted the call.
"""

import json
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, Request, Response
from pydantic import ValidationError

from ..config.settings import Settings, get_settings
from ..dependencies.providers import Caller, get_destination_validator, get_dispatcher
from ..models.errors import (
    DeliveryFailedError,
    DeliveryTimeoutError,
    ErrorResponse,
    InvalidDestinationError,
    InvalidRequestError,
)
from ..models.webhook import DeliveryFailureKind, WebhookCallResponse, WebhookRequest
from ..services.destination_validator import DestinationValidator
from ..services.dispatcher import WebhookDispatcher
from ..utils.logger import get_logger
from ..utils.metrics import record_webhook_rejection

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])

_REJECTIONS = {
    400: {"model": ErrorResponse, "description": "Missing fields or invalid destination"},
    401: {"model": ErrorResponse, "description": "Missing or invalid credentials"},
    405: {"model": ErrorResponse, "description": "Method not allowed"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    502: {"model": ErrorResponse, "description": "Destination unreachable"},
    504: {"model": ErrorResponse, "description": "Destination timed out"},
}


TIMEOUT_MS_INVALID = "Invalid timeout_ms: must be a positive integer number of milliseconds"


def _is_missing_payload(payload: Any) -> bool:
    """null, false, 0 and "" count as missing; empty objects and arrays do not"""
    if isinstance(payload, (dict, list)):
        return False
    return not payload


async def parse_webhook_request(request: Request, settings: Settings) -> WebhookRequest:
    """
    Parse and check the request body

    Raises:
        InvalidRequestError: On malformed JSON or missing/invalid fields
    """
    try:
        body: Any = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidRequestError("Invalid JSON body")

    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    if not body.get("webhook_url"):
        raise InvalidRequestError("webhook_url is required", field="webhook_url")

    if _is_missing_payload(body.get("payload")):
        raise InvalidRequestError("payload is required", field="payload")

    try:
        parsed = WebhookRequest.model_validate(body)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        if field == "timeout_ms":
            raise InvalidRequestError(TIMEOUT_MS_INVALID, field=field)
        raise InvalidRequestError(f"Invalid {field}: {first.get('msg')}", field=field)

    if parsed.timeout_ms is None:
        parsed = parsed.model_copy(update={"timeout_ms": settings.default_timeout_ms})
    return parsed


@router.options("/webhook-caller", include_in_schema=False)
async def webhook_caller_preflight() -> Response:
    """CORS preflight"""
    return Response(status_code=200)


@router.post(
    "/webhook-caller",
    response_model=WebhookCallResponse,
    responses=_REJECTIONS,
    summary="Call an allowlisted webhook",
)
async def call_webhook(
    request: Request,
    caller: Caller,
    validator: Annotated[DestinationValidator, Depends(get_destination_validator)],
    dispatcher: Annotated[WebhookDispatcher, Depends(get_dispatcher)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Dict[str, Any]:
    """
    Deliver an opaque JSON payload to an allowlisted HTTPS webhook

    The caller must present either the internal service ``apikey`` or a
    user bearer token. The response is 200 whenever the destination
    answered in time, even if it answered with an error status.
    """
    try:
        webhook_request = await parse_webhook_request(request, settings)
    except InvalidRequestError as exc:
        record_webhook_rejection(exc.code.value)
        raise

    verdict = validator.validate(webhook_request.webhook_url)
    if not verdict.valid:
        logger.warning(
            f"URL validation failed for caller {caller.log_id}: {verdict.reason}",
            extra={
                "event_type": "webhook_destination_rejected",
                "caller_kind": caller.kind,
                "caller_id": caller.log_id,
                "reason": verdict.reason,
            },
        )
        record_webhook_rejection(InvalidDestinationError.code.value)
        raise InvalidDestinationError(verdict.reason)

    logger.info(
        f"Webhook call by {caller.kind} {caller.log_id} to {verdict.url.host}",
        extra={
            "event_type": "webhook_dispatch_started",
            "caller_kind": caller.kind,
            "caller_id": caller.log_id,
            "destination_host": verdict.url.host,
        },
    )

    outcome = await dispatcher.deliver(
        verdict.url, webhook_request.payload, webhook_request.timeout_ms
    )

    if outcome.failure_kind is DeliveryFailureKind.TIMEOUT:
        raise DeliveryTimeoutError()
    if outcome.failure_kind is DeliveryFailureKind.DELIVERY_FAILED:
        raise DeliveryFailedError()

    return WebhookCallResponse.from_outcome(outcome).model_dump()
