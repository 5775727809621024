from __future__ import annotations

import logging

from authflow.application.dto.auth import CallbackInput, ResolvedIdentity
from authflow.application.ports.auth_port import AuthPort
from authflow.application.ports.oauth_port import OAuthPort
from authflow.application.ports.token_port import TokenPort
from authflow.domain.entities.provider import Provider
from authflow.domain.entities.user import Account, Profile, ProviderType
from authflow.domain.exceptions import (
    AuthorizationRejected,
    InvalidOrExpiredToken,
    Misconfigured,
    NoProfile,
    ProviderError,
    ResolutionFault,
)

from .auth_common import as_user, maybe_await, normalize_email, utcnow


logger = logging.getLogger(__name__)


class IdentityResolver:
    """Turn a provider's completion request into a normalized profile/account pair."""

    def __init__(
        self,
        *,
        token_port: TokenPort,
        auth_port: AuthPort | None = None,
        oauth_port: OAuthPort | None = None,
    ):
        self._token_port = token_port
        self._auth_port = auth_port
        self._oauth_port = oauth_port

    async def resolve(self, provider: Provider, command: CallbackInput) -> ResolvedIdentity:
        if provider.type is ProviderType.OAUTH:
            return await self._resolve_oauth(provider, command)
        if provider.type is ProviderType.EMAIL:
            return await self._resolve_email(provider, command)
        if provider.type is ProviderType.CREDENTIALS:
            return await self._resolve_credentials(provider, command)
        raise Misconfigured(f"Unsupported provider type {provider.type!r}.")

    async def _resolve_oauth(self, provider: Provider, command: CallbackInput) -> ResolvedIdentity:
        if self._oauth_port is None:
            raise Misconfigured("OAuth provider requires an OAuth client.")
        try:
            result = await self._oauth_port.get_profile(
                provider=provider,
                query=command.query,
                csrf_token=command.csrf_token,
            )
        except Exception as exc:
            logger.error("identity_resolver: oauth exchange failed provider=%s error=%s", provider.id, exc)
            raise ProviderError(str(exc)) from exc

        logger.debug(
            "identity_resolver: oauth response provider=%s profile=%s account=%s",
            provider.id,
            result.profile,
            result.account,
        )
        if result.profile is None:
            raise NoProfile(f"No profile returned by provider {provider.id}.")
        if result.account is None or not result.account.provider_account_id:
            raise ProviderError(f"Provider {provider.id} returned no account id.")
        return ResolvedIdentity(
            profile=result.profile,
            account=result.account,
            provider_payload=result.raw_profile,
            claims_payload=result.raw_profile,
        )

    async def _resolve_email(self, provider: Provider, command: CallbackInput) -> ResolvedIdentity:
        if self._auth_port is None:
            raise Misconfigured("Email sign in requires an adapter.")

        raw_email = command.query.get("email") or ""
        token = command.query.get("token") or ""
        if not raw_email.strip() or not token:
            raise InvalidOrExpiredToken("Missing email or token.")
        email = normalize_email(raw_email)
        hashed_token = self._token_port.hash_verification_token(token=token)

        invite = await self._auth_port.get_verification_request(identifier=email, hashed_token=hashed_token)
        if invite is None:
            raise InvalidOrExpiredToken("Verification request not found.")
        if invite.expires <= utcnow():
            await self._auth_port.delete_verification_request(identifier=email, hashed_token=hashed_token)
            raise InvalidOrExpiredToken("Verification request expired.")

        # Single use: deleted before any other step.
        consumed = await self._auth_port.delete_verification_request(identifier=email, hashed_token=hashed_token)
        if not consumed:
            raise InvalidOrExpiredToken("Verification request already used.")

        existing = await self._auth_port.get_user_by_email(email=email)
        profile = existing if existing is not None else Profile(email=email)
        account = Account(provider=provider.id, type=ProviderType.EMAIL, provider_account_id=email)
        return ResolvedIdentity(
            profile=profile,
            account=account,
            provider_payload={"email": email},
            claims_payload=profile,
        )

    async def _resolve_credentials(self, provider: Provider, command: CallbackInput) -> ResolvedIdentity:
        if provider.authorize is None:
            raise Misconfigured("Credentials provider requires an authorize() handler.")

        credentials = dict(command.body)
        try:
            authorized = await maybe_await(provider.authorize(credentials))
        except Exception as exc:
            raise ResolutionFault(str(exc) or type(exc).__name__) from exc
        if not authorized:
            raise AuthorizationRejected(f"Provider {provider.id} rejected the credentials.")

        return ResolvedIdentity(
            profile=as_user(authorized),
            account=Account(provider=provider.id, type=ProviderType.CREDENTIALS),
            provider_payload=credentials,
            claims_payload=authorized,
        )
