"""
Unit tests for caller authentication
"""

from datetime import timedelta
from types import SimpleNamespace

import pytest

from webhook_caller.models.auth import InternalCaller, UserCaller
from webhook_caller.models.errors import AuthnError
from webhook_caller.services.auth_service import (
    Authenticator,
    JWTIdentityVerifier,
    SupabaseIdentityVerifier,
    TokenVerificationError,
    get_token_from_header,
)
from tests.conftest import JWT_SECRET, SERVICE_ROLE_KEY, make_user_token


@pytest.fixture
def authenticator() -> Authenticator:
    return Authenticator(
        service_role_key=SERVICE_ROLE_KEY,
        verifier=JWTIdentityVerifier(JWT_SECRET),
    )


class TestTokenHeader:
    def test_bearer_token_extracted(self):
        assert get_token_from_header("Bearer abc.def.ghi") == "abc.def.ghi"
        assert get_token_from_header("bearer abc") == "abc"

    @pytest.mark.parametrize("header", ["abc.def.ghi", "Basic abc", "Bearer", "Bearer a b"])
    def test_malformed_header_rejected(self, header):
        with pytest.raises(TokenVerificationError):
            get_token_from_header(header)


class TestAuthenticator:
    async def test_service_key_gives_internal_caller(self, authenticator):
        caller = await authenticator.authenticate(None, SERVICE_ROLE_KEY)

        assert caller == InternalCaller()
        assert caller.rate_limit_key == "internal"

    async def test_service_key_wins_over_bad_bearer(self, authenticator):
        caller = await authenticator.authenticate("Bearer garbage", SERVICE_ROLE_KEY)

        assert isinstance(caller, InternalCaller)

    async def test_valid_user_token(self, authenticator):
        token = make_user_token(sub="user-42")

        caller = await authenticator.authenticate(f"Bearer {token}", None)

        assert caller == UserCaller(id="user-42")
        assert caller.rate_limit_key == "user:user-42"

    async def test_wrong_apikey_without_token_requires_authorization(self, authenticator):
        with pytest.raises(AuthnError) as exc:
            await authenticator.authenticate(None, "not-the-service-key")

        assert exc.value.message == "Authorization required"
        assert exc.value.status_code == 401

    async def test_no_credentials(self, authenticator):
        with pytest.raises(AuthnError) as exc:
            await authenticator.authenticate(None, None)

        assert exc.value.message == "Authorization required"

    async def test_empty_apikey_never_matches_unset_service_key(self):
        authenticator = Authenticator(service_role_key=None, verifier=JWTIdentityVerifier(JWT_SECRET))

        with pytest.raises(AuthnError) as exc:
            await authenticator.authenticate(None, "")

        assert exc.value.message == "Authorization required"

    @pytest.mark.parametrize(
        "token",
        [
            make_user_token(expires_in=timedelta(minutes=-5)),
            make_user_token(audience="anon"),
            make_user_token(secret="some-other-secret-that-is-long-enough"),
            "not-a-jwt",
        ],
        ids=["expired", "wrong_audience", "wrong_secret", "garbage"],
    )
    async def test_rejected_tokens(self, authenticator, token):
        with pytest.raises(AuthnError) as exc:
            await authenticator.authenticate(f"Bearer {token}", None)

        assert exc.value.message == "Invalid or expired token"

    async def test_malformed_authorization_header(self, authenticator):
        with pytest.raises(AuthnError) as exc:
            await authenticator.authenticate(make_user_token(), None)

        assert exc.value.message == "Invalid or expired token"

    async def test_no_verifier_rejects_bearer_tokens(self):
        authenticator = Authenticator(service_role_key=SERVICE_ROLE_KEY, verifier=None)

        with pytest.raises(AuthnError) as exc:
            await authenticator.authenticate(f"Bearer {make_user_token()}", None)

        assert exc.value.message == "Invalid or expired token"


class TestSupabaseIdentityVerifier:
    async def test_user_id_from_auth_server(self, mocker):
        client = mocker.MagicMock()
        client.auth.get_user.return_value = SimpleNamespace(user=SimpleNamespace(id="uuid-1"))
        verifier = SupabaseIdentityVerifier("https://project.supabase.co", "anon", client=client)

        assert await verifier.verify("token-1") == "uuid-1"
        client.auth.get_user.assert_called_once_with("token-1")

    async def test_auth_server_error_becomes_verification_error(self, mocker):
        client = mocker.MagicMock()
        client.auth.get_user.side_effect = RuntimeError("invalid JWT")
        verifier = SupabaseIdentityVerifier("https://project.supabase.co", "anon", client=client)

        with pytest.raises(TokenVerificationError):
            await verifier.verify("token-1")

    async def test_missing_user_rejected(self, mocker):
        client = mocker.MagicMock()
        client.auth.get_user.return_value = None
        verifier = SupabaseIdentityVerifier("https://project.supabase.co", "anon", client=client)

        with pytest.raises(TokenVerificationError):
            await verifier.verify("token-1")

    async def test_authenticator_with_supabase_verifier(self, mocker):
        client = mocker.MagicMock()
        client.auth.get_user.return_value = SimpleNamespace(user=SimpleNamespace(id="uuid-7"))
        authenticator = Authenticator(
            verifier=SupabaseIdentityVerifier("https://project.supabase.co", "anon", client=client)
        )

        caller = await authenticator.authenticate("Bearer opaque", None)

        assert caller == UserCaller(id="uuid-7")
