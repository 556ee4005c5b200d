"""
Webhook Caller - FastAPI service
Guarded outbound webhook egress with authentication, rate limiting and SSRF checks
"""

import os

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load environment variables before settings are read
load_dotenv()

from webhook_caller.api.health import router as health_router
from webhook_caller.api.webhook_caller import router as webhook_caller_router
from webhook_caller.config.settings import get_settings
from webhook_caller.middleware.error_middleware import (
    ErrorMiddleware,
    http_exception_handler,
    webhook_error_handler,
)
from webhook_caller.middleware.logging import LoggingMiddleware
from webhook_caller.models.errors import WebhookCallerError
from webhook_caller.utils.logger import log

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

settings = get_settings()

app = FastAPI(
    title="Webhook Caller API",
    description="""
    Delivers JSON payloads to allowlisted third-party webhooks on behalf of
    internal jobs and authenticated users.

    Callers authenticate with either the service `apikey` header or a user
    bearer token. Destinations must be HTTPS and on the domain allowlist.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_exception_handler(WebhookCallerError, webhook_error_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)

# Middleware added last runs first: CORS headers wrap logging, which wraps error handling
app.add_middleware(ErrorMiddleware)
app.add_middleware(LoggingMiddleware)


@app.middleware("http")
async def cors_headers(request: Request, call_next):
    """Permissive CORS headers on every response, including rejections"""
    response = await call_next(request)
    for name, value in CORS_HEADERS.items():
        response.headers[name] = value
    return response


app.include_router(health_router)
app.include_router(webhook_caller_router)

log.info(
    "Application configured",
    extra={
        "event_type": "app_startup",
        "version": settings.app_version,
        "environment": settings.environment,
        "identity_verifier": settings.identity_verification_mode or "none",
        "allowed_domains": list(settings.allowed_domains),
    },
)


if __name__ == "__main__":
    # For development only
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        reload=settings.environment == "development",
        timeout_keep_alive=30,
        timeout_graceful_shutdown=10,
    )
