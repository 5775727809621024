from __future__ import annotations

import pytest

from authflow.application.dto.auth import CallbackInput
from authflow.application.use_cases.resolve_identity import IdentityResolver
from authflow.domain.entities.provider import Provider
from authflow.domain.entities.user import Profile, ProviderType, User
from authflow.domain.exceptions import (
    AuthorizationRejected,
    InvalidOrExpiredToken,
    Misconfigured,
    NoProfile,
    ProviderError,
    ResolutionFault,
)
from tests.fakes import FakeAuthPort, FakeOAuthPort, FakeTokenPort, in_future, in_past, oauth_result


GOOGLE = Provider(id="google", name="Google", type=ProviderType.OAUTH)
EMAIL = Provider(id="email", name="Email", type=ProviderType.EMAIL)


def _resolver(*, auth_port=None, oauth_port=None) -> IdentityResolver:
    return IdentityResolver(token_port=FakeTokenPort(), auth_port=auth_port, oauth_port=oauth_port)


@pytest.mark.asyncio
async def test_oauth_resolution_returns_profile_and_account():
    oauth_port = FakeOAuthPort(oauth_result(subject="g-9"))
    resolver = _resolver(oauth_port=oauth_port)

    identity = await resolver.resolve(GOOGLE, CallbackInput(provider_id="google", query={"code": "c"}, csrf_token="csrf"))

    assert identity.profile.email == "alice@example.com"
    assert identity.account.provider_account_id == "g-9"
    assert identity.provider_payload == {"sub": "g-9", "email": "alice@example.com"}
    assert oauth_port.calls[0]["csrf_token"] == "csrf"


@pytest.mark.asyncio
async def test_oauth_without_profile_raises_no_profile():
    resolver = _resolver(oauth_port=FakeOAuthPort())

    with pytest.raises(NoProfile):
        await resolver.resolve(GOOGLE, CallbackInput(provider_id="google"))


@pytest.mark.asyncio
async def test_oauth_transport_failure_raises_provider_error():
    resolver = _resolver(oauth_port=FakeOAuthPort(error=ConnectionError("reset")))

    with pytest.raises(ProviderError):
        await resolver.resolve(GOOGLE, CallbackInput(provider_id="google", query={"code": "c"}))


@pytest.mark.asyncio
async def test_email_without_adapter_is_misconfigured():
    with pytest.raises(Misconfigured):
        await _resolver().resolve(EMAIL, CallbackInput(provider_id="email", query={"email": "a@b.c", "token": "t"}))


@pytest.mark.asyncio
async def test_email_resolution_synthesizes_profile_for_unknown_user():
    auth_port = FakeAuthPort()
    auth_port.add_verification_request(identifier="new@example.com", hashed_token="hashed:t", expires=in_future())

    identity = await _resolver(auth_port=auth_port).resolve(
        EMAIL,
        CallbackInput(provider_id="email", query={"email": "new@example.com", "token": "t"}),
    )

    assert identity.profile == Profile(email="new@example.com")
    assert identity.account.type is ProviderType.EMAIL
    assert identity.account.provider_account_id == "new@example.com"
    assert auth_port.calls.index("delete_verification_request") < auth_port.calls.index("get_user_by_email")


@pytest.mark.asyncio
async def test_email_resolution_uses_existing_user():
    auth_port = FakeAuthPort()
    user = auth_port.add_user(email="alice@example.com")
    auth_port.add_verification_request(identifier="alice@example.com", hashed_token="hashed:t", expires=in_future())

    identity = await _resolver(auth_port=auth_port).resolve(
        EMAIL,
        CallbackInput(provider_id="email", query={"email": "alice@example.com", "token": "t"}),
    )

    assert isinstance(identity.profile, User)
    assert identity.profile.id == user.id


@pytest.mark.asyncio
async def test_expired_request_is_removed_and_rejected():
    auth_port = FakeAuthPort()
    auth_port.add_verification_request(identifier="alice@example.com", hashed_token="hashed:t", expires=in_past())

    with pytest.raises(InvalidOrExpiredToken):
        await _resolver(auth_port=auth_port).resolve(
            EMAIL,
            CallbackInput(provider_id="email", query={"email": "alice@example.com", "token": "t"}),
        )
    assert auth_port.verification_requests == {}


@pytest.mark.asyncio
async def test_missing_token_is_rejected():
    with pytest.raises(InvalidOrExpiredToken):
        await _resolver(auth_port=FakeAuthPort()).resolve(
            EMAIL,
            CallbackInput(provider_id="email", query={"email": "alice@example.com"}),
        )


@pytest.mark.asyncio
async def test_credentials_without_authorize_is_misconfigured():
    provider = Provider(id="credentials", name="Credentials", type=ProviderType.CREDENTIALS)

    with pytest.raises(Misconfigured):
        await _resolver().resolve(provider, CallbackInput(provider_id="credentials", method="POST"))


@pytest.mark.asyncio
async def test_credentials_async_authorize_result_becomes_profile():
    async def authorize(credentials):
        return User(id="u-1", name="Alice", email=credentials["email"], image=None)

    provider = Provider(id="credentials", name="Credentials", type=ProviderType.CREDENTIALS, authorize=authorize)

    identity = await _resolver().resolve(
        provider,
        CallbackInput(provider_id="credentials", method="POST", body={"email": "alice@example.com"}),
    )

    assert identity.profile.id == "u-1"
    assert identity.account.type is ProviderType.CREDENTIALS
    assert identity.account.provider_account_id is None


@pytest.mark.asyncio
async def test_credentials_falsy_result_is_rejected():
    provider = Provider(id="credentials", name="Credentials", type=ProviderType.CREDENTIALS, authorize=lambda _c: None)

    with pytest.raises(AuthorizationRejected):
        await _resolver().resolve(provider, CallbackInput(provider_id="credentials", method="POST"))


@pytest.mark.asyncio
async def test_credentials_exception_carries_message():
    def authorize(_credentials):
        raise PermissionError("Too many attempts")

    provider = Provider(id="credentials", name="Credentials", type=ProviderType.CREDENTIALS, authorize=authorize)

    with pytest.raises(ResolutionFault) as exc_info:
        await _resolver().resolve(provider, CallbackInput(provider_id="credentials", method="POST"))

    assert exc_info.value.detail == "Too many attempts"
