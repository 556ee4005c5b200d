"""
Pytest configuration for webhook caller tests
"""

import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import httpx
import jwt
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

os.environ.setdefault("ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from main import app
from webhook_caller.config.settings import Settings, get_settings
from webhook_caller.dependencies.providers import (
    get_authenticator,
    get_destination_validator,
    get_dispatcher,
    get_rate_limiter,
)
from webhook_caller.models.rate_limiting import RateLimitConfig
from webhook_caller.services.auth_service import Authenticator, JWTIdentityVerifier
from webhook_caller.services.destination_validator import DestinationValidator
from webhook_caller.services.dispatcher import WebhookDispatcher
from webhook_caller.utils.rate_limiter import FixedWindowRateLimiter, MemoryStore

SERVICE_ROLE_KEY = "test-service-role-key"
JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWebhookServer:
    """Records outbound webhook calls made through httpx.MockTransport"""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.delay = 0.0
        self.error: Optional[Exception] = None

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json={"received": True})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def make_user_token(
    sub: str = "user-123",
    secret: str = JWT_SECRET,
    audience: str = "authenticated",
    expires_in: timedelta = timedelta(minutes=30),
) -> str:
    """Create a Supabase-style access token"""
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {
            "sub": sub,
            "aud": audience,
            "role": "authenticated",
            "iat": int(now.timestamp()),
            "exp": int((now + expires_in).timestamp()),
        },
        secret,
        algorithm="HS256",
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        service_role_key=SERVICE_ROLE_KEY,
        jwt_secret=JWT_SECRET,
        environment="testing",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def webhook_server() -> FakeWebhookServer:
    return FakeWebhookServer()


@pytest.fixture
def rate_limiter(settings: Settings, clock: FakeClock) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        MemoryStore(),
        RateLimitConfig(limit=settings.rate_limit, window_seconds=settings.rate_window_seconds),
        clock=clock,
    )


@pytest.fixture
def user_token() -> str:
    return make_user_token()


@pytest_asyncio.fixture
async def client(
    settings: Settings,
    rate_limiter: FixedWindowRateLimiter,
    webhook_server: FakeWebhookServer,
) -> AsyncClient:
    """Async test client with every collaborator replaced by a test double"""
    authenticator = Authenticator(
        service_role_key=settings.service_role_key,
        verifier=JWTIdentityVerifier(settings.jwt_secret),
    )
    validator = DestinationValidator(settings.allowed_domains)
    dispatcher = WebhookDispatcher(
        user_agent=settings.user_agent, transport=webhook_server.transport
    )

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_authenticator] = lambda: authenticator
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[get_destination_validator] = lambda: validator
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://testserver"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
