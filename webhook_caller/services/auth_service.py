"""
Caller authentication for the webhook guard.

A request is authenticated either by the internal service-role ``apikey``
or by an end-user bearer token. Token verification is delegated to an
``IdentityVerifier``: locally against the project JWT secret, or remotely
through the Supabase Auth API.
"""

import asyncio
import hmac
from abc import ABC, abstractmethod
from typing import Optional

import jwt
from supabase import Client, create_client

from ..models.auth import CallerIdentity, InternalCaller, UserCaller
from ..models.errors import AuthnError
from ..utils.logger import get_logger

logger = get_logger(__name__)

AUTHORIZATION_REQUIRED = "Authorization required"
INVALID_TOKEN = "Invalid or expired token"


class TokenVerificationError(Exception):
    """Token was rejected by the identity verifier"""
    pass


def get_token_from_header(authorization: str) -> str:
    """
    Extract token from Authorization header

    Args:
        authorization: Authorization header value

    Returns:
        Bearer token string

    Raises:
        TokenVerificationError: If header format is invalid
    """
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise TokenVerificationError("Invalid authorization header format")
    return parts[1]


class IdentityVerifier(ABC):
    """Resolves a bearer token to a user id."""

    @abstractmethod
    async def verify(self, token: str) -> str:
        """Return the user id for token or raise TokenVerificationError."""


class JWTIdentityVerifier(IdentityVerifier):
    """Verifies Supabase-issued access tokens locally with the project JWT secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", audience: str = "authenticated"):
        self.secret = secret
        self.algorithm = algorithm
        self.audience = audience

    async def verify(self, token: str) -> str:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenVerificationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenVerificationError(f"Invalid token: {str(e)}")

        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub:
            raise TokenVerificationError("Token subject is missing")
        return sub


class SupabaseIdentityVerifier(IdentityVerifier):
    """Asks the Supabase Auth server who owns the token."""

    def __init__(self, supabase_url: str, supabase_key: str, client: Optional[Client] = None):
        self.supabase_url = supabase_url
        self.supabase_key = supabase_key
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = create_client(self.supabase_url, self.supabase_key)
            logger.info("Initialized Supabase Auth client")
        return self._client

    async def verify(self, token: str) -> str:
        try:
            # supabase-py's auth client is synchronous
            response = await asyncio.to_thread(self.client.auth.get_user, token)
        except Exception as e:
            raise TokenVerificationError(f"Token verification failed: {str(e)}")

        user = getattr(response, "user", None) if response is not None else None
        if user is None or not getattr(user, "id", None):
            raise TokenVerificationError("No user for token")
        return str(user.id)


class Authenticator:
    """Resolves the caller identity for one request."""

    def __init__(
        self,
        service_role_key: Optional[str] = None,
        verifier: Optional[IdentityVerifier] = None,
    ):
        self.service_role_key = service_role_key
        self.verifier = verifier

    def _is_internal(self, apikey: Optional[str]) -> bool:
        if not apikey or not self.service_role_key:
            return False
        return hmac.compare_digest(apikey.encode(), self.service_role_key.encode())

    async def authenticate(
        self, authorization: Optional[str], apikey: Optional[str]
    ) -> CallerIdentity:
        """
        Authenticate a request from its headers

        Args:
            authorization: Authorization header value
            apikey: apikey header value

        Returns:
            InternalCaller or UserCaller

        Raises:
            AuthnError: If no valid credential is presented (401)
        """
        if self._is_internal(apikey):
            return InternalCaller()

        if not authorization:
            raise AuthnError(AUTHORIZATION_REQUIRED)

        if self.verifier is None:
            logger.error(
                "Bearer token presented but no identity verifier is configured",
                extra={"event_type": "webhook_auth_failed", "reason": "verifier_missing"},
            )
            raise AuthnError(INVALID_TOKEN)

        try:
            token = get_token_from_header(authorization)
            user_id = await self.verifier.verify(token)
        except TokenVerificationError as e:
            logger.warning(
                "Auth error",
                extra={"event_type": "webhook_auth_failed", "reason": str(e)},
            )
            raise AuthnError(INVALID_TOKEN)

        return UserCaller(id=user_id)
