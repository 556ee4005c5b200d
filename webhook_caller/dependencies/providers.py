"""
FastAPI dependency providers for the webhook guard

Each collaborator is built once per process from settings. Tests replace
them through ``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header

from ..config.settings import Settings, get_settings
from ..models.auth import CallerIdentity
from ..models.errors import AuthnError, RateLimitedError
from ..models.rate_limiting import RateLimitConfig
from ..services.auth_service import (
    Authenticator,
    IdentityVerifier,
    JWTIdentityVerifier,
    SupabaseIdentityVerifier,
)
from ..services.destination_validator import DestinationValidator
from ..services.dispatcher import WebhookDispatcher
from ..utils.logger import get_logger
from ..utils.metrics import record_webhook_rejection
from ..utils.rate_limiter import FixedWindowRateLimiter, MemoryStore

logger = get_logger(__name__)


def build_identity_verifier(settings: Settings) -> Optional[IdentityVerifier]:
    """Pick the identity verifier the settings allow, preferring local JWT checks."""
    mode = settings.identity_verification_mode
    if mode == "jwt":
        return JWTIdentityVerifier(settings.jwt_secret)
    if mode == "supabase":
        return SupabaseIdentityVerifier(settings.supabase_url, settings.supabase_anon_key)
    logger.warning(
        "No identity verifier configured; bearer tokens will be rejected",
        extra={"event_type": "config_warning"},
    )
    return None


@lru_cache(maxsize=1)
def get_authenticator() -> Authenticator:
    settings = get_settings()
    return Authenticator(
        service_role_key=settings.service_role_key,
        verifier=build_identity_verifier(settings),
    )


@lru_cache(maxsize=1)
def get_rate_limiter() -> FixedWindowRateLimiter:
    """Get the process-wide rate limiter."""
    settings = get_settings()
    return FixedWindowRateLimiter(
        MemoryStore(),
        RateLimitConfig(
            limit=settings.rate_limit,
            window_seconds=settings.rate_window_seconds,
        ),
    )


@lru_cache(maxsize=1)
def get_destination_validator() -> DestinationValidator:
    return DestinationValidator(get_settings().allowed_domains)


@lru_cache(maxsize=1)
def get_dispatcher() -> WebhookDispatcher:
    return WebhookDispatcher(user_agent=get_settings().user_agent)


async def get_caller(
    authenticator: Annotated[Authenticator, Depends(get_authenticator)],
    authorization: Annotated[Optional[str], Header()] = None,
    apikey: Annotated[Optional[str], Header()] = None,
) -> CallerIdentity:
    """Authentication gate"""
    try:
        return await authenticator.authenticate(authorization, apikey)
    except AuthnError as exc:
        record_webhook_rejection(exc.code.value)
        raise


async def enforce_rate_limit(
    caller: Annotated[CallerIdentity, Depends(get_caller)],
    rate_limiter: Annotated[FixedWindowRateLimiter, Depends(get_rate_limiter)],
) -> CallerIdentity:
    """Rate limit gate; runs only after authentication succeeded"""
    try:
        await rate_limiter.check(caller.rate_limit_key)
    except RateLimitedError as exc:
        logger.warning(
            f"Rate limit exceeded for caller: {caller.log_id}",
            extra={
                "event_type": "webhook_rate_limited",
                "caller_kind": caller.kind,
                "caller_id": caller.log_id,
                "retry_after": exc.retry_after,
            },
        )
        record_webhook_rejection(exc.code.value)
        raise
    return caller


Caller = Annotated[CallerIdentity, Depends(enforce_rate_limit)]
