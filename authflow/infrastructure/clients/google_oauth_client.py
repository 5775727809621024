from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

import httpx
from google.auth.transport import requests
from google.oauth2 import id_token

from authflow.application.dto.auth import OAuthProfileResult
from authflow.application.ports.oauth_port import OAuthPort
from authflow.domain.entities.provider import Provider
from authflow.domain.entities.user import Account, Profile, ProviderType
from authflow.domain.exceptions import GoogleTokenValidationError


logger = logging.getLogger(__name__)

GOOGLE_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"


def oauth_state(csrf_token: str) -> str:
    """State parameter bound to the CSRF token of the authorization request."""
    return hashlib.sha256(csrf_token.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class GoogleOAuthClientSettings:
    redirect_uri: str
    token_endpoint: str = GOOGLE_TOKEN_ENDPOINT
    timeout_seconds: float = 10.0


class GoogleOAuthClient(OAuthPort):
    def __init__(
        self,
        settings: GoogleOAuthClientSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings
        self._transport = transport

    async def get_profile(
        self,
        *,
        provider: Provider,
        query: Mapping[str, str],
        csrf_token: str | None,
    ) -> OAuthProfileResult:
        if query.get("error"):
            logger.info("google_oauth_client: provider returned error=%s", query.get("error"))
            return OAuthProfileResult(profile=None, account=None)
        code = query.get("code")
        if not code:
            logger.info("google_oauth_client: callback without code")
            return OAuthProfileResult(profile=None, account=None)

        state = query.get("state") or ""
        if not csrf_token or not hmac.compare_digest(state, oauth_state(csrf_token)):
            raise GoogleTokenValidationError("OAuth state does not match the CSRF token.")

        tokens = await self._exchange_code(provider, code=code)
        raw_id_token = tokens.get("id_token")
        if not raw_id_token:
            raise GoogleTokenValidationError("Token response missing id_token.")

        try:
            payload = await asyncio.to_thread(id_token_verify, token=raw_id_token, audience=provider.client_id or "")
        except Exception as exc:
            raise GoogleTokenValidationError("Invalid Google id_token.") from exc

        subject = payload.get("sub")
        if not subject:
            raise GoogleTokenValidationError("Google id_token missing required claims.")

        expires_in = tokens.get("expires_in")
        access_token_expires = None
        if isinstance(expires_in, (int, float)):
            access_token_expires = datetime.now(timezone.utc) + timedelta(seconds=expires_in)

        profile = Profile(
            id=str(subject),
            email=payload.get("email") if isinstance(payload.get("email"), str) else None,
            name=payload.get("name") if isinstance(payload.get("name"), str) else None,
            image=payload.get("picture") if isinstance(payload.get("picture"), str) else None,
        )
        account = Account(
            provider=provider.id,
            type=ProviderType.OAUTH,
            provider_account_id=str(subject),
            access_token=tokens.get("access_token"),
            refresh_token=tokens.get("refresh_token"),
            access_token_expires=access_token_expires,
        )
        return OAuthProfileResult(profile=profile, account=account, raw_profile=payload)

    async def _exchange_code(self, provider: Provider, *, code: str) -> dict[str, Any]:
        form = {
            "client_id": provider.client_id or "",
            "client_secret": provider.client_secret or "",
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self._settings.redirect_uri,
        }
        async with httpx.AsyncClient(timeout=self._settings.timeout_seconds, transport=self._transport) as client:
            response = await client.post(self._settings.token_endpoint, data=form)
        if response.status_code >= 400:
            raise ValueError(f"Token exchange failed (status={response.status_code})")
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("Invalid token response")
        return data


def id_token_verify(*, token: str, audience: str) -> dict:
    request = requests.Request()
    return id_token.verify_oauth2_token(token, request, audience)
