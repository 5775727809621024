from __future__ import annotations

from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

from fastapi import HTTPException

from authflow.application.dto.options import (
    SESSION_COOKIE_BASENAME,
    AuthOptions,
    CallbacksOptions,
    CookieOptions,
    EventHandler,
    PagesOptions,
    SessionOptions,
)
from authflow.application.use_cases.authorize_local_credentials import LocalCredentialsAuthorizer
from authflow.application.use_cases.dispatch_events import EventDispatcher
from authflow.application.use_cases.handle_callback import HandleCallbackUseCase
from authflow.application.use_cases.list_providers import ListProvidersUseCase
from authflow.domain.entities.event import EventKind
from authflow.domain.entities.provider import AuthorizeFn, CredentialField, Provider
from authflow.domain.entities.user import ProviderType
from authflow.infrastructure.clients.google_oauth_client import GoogleOAuthClient, GoogleOAuthClientSettings
from authflow.infrastructure.db.engine import get_session_factory
from authflow.infrastructure.db.repositories.accounts_repository import SqlAccountsRepository
from authflow.infrastructure.security.password_hasher import PasswordHasher
from authflow.infrastructure.security.token_service import JwtTokenService
from authflow.shared.config import Settings, get_settings


GOOGLE_PROVIDER_ID = "google"
EMAIL_PROVIDER_ID = "email"
CREDENTIALS_PROVIDER_ID = "credentials"


def build_auth_options(
    settings: Settings,
    *,
    authorize: AuthorizeFn | None = None,
    callbacks: CallbacksOptions | None = None,
    events: Mapping[EventKind, EventHandler] | None = None,
) -> AuthOptions:
    secure = settings.base_url.startswith("https://")
    providers: dict[str, Provider] = {}
    if settings.google_client_id:
        providers[GOOGLE_PROVIDER_ID] = Provider(
            id=GOOGLE_PROVIDER_ID,
            name="Google",
            type=ProviderType.OAUTH,
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
        )
    if settings.email_provider_enabled:
        providers[EMAIL_PROVIDER_ID] = Provider(id=EMAIL_PROVIDER_ID, name="Email", type=ProviderType.EMAIL)
    if settings.credentials_provider_enabled:
        providers[CREDENTIALS_PROVIDER_ID] = Provider(
            id=CREDENTIALS_PROVIDER_ID,
            name="Credentials",
            type=ProviderType.CREDENTIALS,
            authorize=authorize,
            credentials={
                "email": CredentialField(label="Email", type="email", placeholder="you@example.com"),
                "password": CredentialField(label="Password", type="password"),
            },
        )

    return AuthOptions(
        base_url=settings.base_url,
        base_path=settings.base_path,
        secret=settings.secret,
        providers=MappingProxyType(providers),
        session=SessionOptions(
            strategy="database" if settings.session_strategy == "database" else "jwt",
            max_age_seconds=settings.session_max_age_seconds,
        ),
        pages=PagesOptions(new_user=settings.new_user_page),
        cookie=CookieOptions(
            name=f"__Secure-{SESSION_COOKIE_BASENAME}" if secure else SESSION_COOKIE_BASENAME,
            secure=secure,
        ),
        callbacks=callbacks or CallbacksOptions(),
        events=MappingProxyType(dict(events or {})),
    )


@lru_cache(maxsize=1)
def _get_accounts_repository() -> SqlAccountsRepository | None:
    settings = get_settings()
    if not settings.database_url:
        return None
    return SqlAccountsRepository(get_session_factory(settings.database_url))


@lru_cache(maxsize=1)
def _get_password_hasher() -> PasswordHasher:
    return PasswordHasher()


@lru_cache(maxsize=1)
def _get_token_service() -> JwtTokenService:
    settings = get_settings()
    if not settings.secret:
        raise HTTPException(status_code=500, detail="AUTH_SECRET is required.")
    return JwtTokenService(
        secret=settings.secret,
        default_max_age_seconds=settings.session_max_age_seconds,
        encryption=settings.encryption_enabled,
    )


@lru_cache(maxsize=1)
def _get_google_oauth_client() -> GoogleOAuthClient:
    settings = get_settings()
    auth_url = f"{settings.base_url.rstrip('/')}{settings.base_path}"
    return GoogleOAuthClient(
        GoogleOAuthClientSettings(redirect_uri=f"{auth_url}/callback/{GOOGLE_PROVIDER_ID}")
    )


@lru_cache(maxsize=1)
def _get_event_dispatcher() -> EventDispatcher:
    return EventDispatcher()


@lru_cache(maxsize=1)
def get_auth_options() -> AuthOptions:
    settings = get_settings()
    authorize = None
    if settings.credentials_provider_enabled:
        repository = _get_accounts_repository()
        if repository is None:
            raise HTTPException(status_code=500, detail="DATABASE_URL is required for credentials sign in.")
        authorize = LocalCredentialsAuthorizer(
            credentials_port=repository,
            password_hasher=_get_password_hasher(),
        )
    return build_auth_options(settings, authorize=authorize)


def get_handle_callback_use_case() -> HandleCallbackUseCase:
    return HandleCallbackUseCase(
        token_port=_get_token_service(),
        auth_port=_get_accounts_repository(),
        oauth_port=_get_google_oauth_client(),
        dispatcher=_get_event_dispatcher(),
    )


def get_list_providers_use_case() -> ListProvidersUseCase:
    return ListProvidersUseCase()
