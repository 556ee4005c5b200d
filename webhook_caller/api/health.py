"""
Health check and metrics endpoints for the webhook caller service
Provides liveness (/healthz), readiness (/readyz), and metrics (/metrics) endpoints
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, Response, status

from ..config.settings import Settings, get_settings
from ..utils.metrics import metrics_endpoint


router = APIRouter(tags=["Observability"])


@router.get(
    "/healthz",
    summary="Liveness probe",
    description="Fast liveness check that doesn't depend on external services"
)
async def healthz(settings: Annotated[Settings, Depends(get_settings)]) -> Dict[str, Any]:
    """Liveness probe - indicates if the application is running"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.app_version,
        "service": "webhook-caller"
    }


@router.get(
    "/readyz",
    summary="Readiness probe",
    description="Readiness check that verifies the guard is configured to serve traffic"
)
async def readyz(
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Dict[str, Any]:
    """
    Readiness probe

    The guard is ready when at least one way of authenticating callers is
    configured and the destination allowlist is non-empty.
    """
    can_authenticate = bool(
        settings.identity_verification_mode or settings.service_role_key
    )
    checks = {
        "authentication": "configured" if can_authenticate else "missing",
        "identity_verifier": settings.identity_verification_mode or "none",
        "allowlist": "configured" if settings.allowed_domains else "empty",
    }
    healthy = can_authenticate and bool(settings.allowed_domains)

    if not healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks
    }


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Prometheus metrics endpoint for monitoring and alerting"
)
def metrics(settings: Annotated[Settings, Depends(get_settings)]):
    """Prometheus metrics, disabled via METRICS_ENABLED=false"""
    return metrics_endpoint(settings.metrics_enabled)


@router.get(
    "/info",
    summary="Application information",
)
async def info(settings: Annotated[Settings, Depends(get_settings)]) -> Dict[str, Any]:
    """Application metadata and effective webhook policy"""
    return {
        "name": "Webhook Caller",
        "service": "webhook-caller",
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "webhooks": {
            "allowed_domains": list(settings.allowed_domains),
            "rate_limit": settings.rate_limit,
            "rate_window_seconds": settings.rate_window_seconds,
            "default_timeout_ms": settings.default_timeout_ms,
        },
        "endpoints": {
            "webhook_caller": "/webhook-caller",
            "health_liveness": "/healthz",
            "health_readiness": "/readyz",
            "metrics": "/metrics",
            "openapi": "/docs"
        }
    }
