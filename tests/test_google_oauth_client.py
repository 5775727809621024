from __future__ import annotations

import httpx
import pytest

from authflow.domain.entities.provider import Provider
from authflow.domain.entities.user import ProviderType
from authflow.domain.exceptions import GoogleTokenValidationError
from authflow.infrastructure.clients import google_oauth_client
from authflow.infrastructure.clients.google_oauth_client import (
    GoogleOAuthClient,
    GoogleOAuthClientSettings,
    oauth_state,
)


PROVIDER = Provider(id="google", name="Google", type=ProviderType.OAUTH, client_id="cid", client_secret="csecret")
REDIRECT_URI = "https://app.example.com/api/auth/callback/google"


def _client(handler) -> GoogleOAuthClient:
    return GoogleOAuthClient(
        GoogleOAuthClientSettings(redirect_uri=REDIRECT_URI),
        transport=httpx.MockTransport(handler),
    )


def _token_handler(requests: list):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={"access_token": "at", "refresh_token": "rt", "expires_in": 3599, "id_token": "raw-id-token"},
        )

    return handler


@pytest.mark.asyncio
async def test_code_is_exchanged_and_profile_built(monkeypatch):
    requests: list = []
    verified: list = []

    def fake_verify(*, token, audience):
        verified.append((token, audience))
        return {"sub": "g-1", "email": "alice@example.com", "name": "Alice", "picture": "https://example.com/a.png"}

    monkeypatch.setattr(google_oauth_client, "id_token_verify", fake_verify)

    result = await _client(_token_handler(requests)).get_profile(
        provider=PROVIDER,
        query={"code": "auth-code", "state": oauth_state("csrf")},
        csrf_token="csrf",
    )

    assert result.profile.id == "g-1"
    assert result.profile.image == "https://example.com/a.png"
    assert result.account.provider == "google"
    assert result.account.provider_account_id == "g-1"
    assert result.account.refresh_token == "rt"
    assert result.account.access_token_expires is not None
    assert result.raw_profile["email"] == "alice@example.com"
    assert verified == [("raw-id-token", "cid")]
    body = requests[0].content.decode()
    assert "code=auth-code" in body
    assert "grant_type=authorization_code" in body


@pytest.mark.asyncio
async def test_provider_error_query_returns_no_profile():
    requests: list = []

    result = await _client(_token_handler(requests)).get_profile(
        provider=PROVIDER,
        query={"error": "access_denied"},
        csrf_token="csrf",
    )

    assert result.profile is None
    assert requests == []


@pytest.mark.asyncio
async def test_state_mismatch_is_rejected():
    with pytest.raises(GoogleTokenValidationError):
        await _client(_token_handler([])).get_profile(
            provider=PROVIDER,
            query={"code": "auth-code", "state": oauth_state("other")},
            csrf_token="csrf",
        )


@pytest.mark.asyncio
async def test_failed_exchange_raises():
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "invalid_grant"})

    with pytest.raises(ValueError):
        await _client(handler).get_profile(
            provider=PROVIDER,
            query={"code": "auth-code", "state": oauth_state("csrf")},
            csrf_token="csrf",
        )


@pytest.mark.asyncio
async def test_invalid_id_token_is_rejected(monkeypatch):
    def fake_verify(*, token, audience):
        raise ValueError("Token expired")

    monkeypatch.setattr(google_oauth_client, "id_token_verify", fake_verify)

    with pytest.raises(GoogleTokenValidationError):
        await _client(_token_handler([])).get_profile(
            provider=PROVIDER,
            query={"code": "auth-code", "state": oauth_state("csrf")},
            csrf_token="csrf",
        )
