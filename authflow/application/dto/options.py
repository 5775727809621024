from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Literal, Mapping
from urllib.parse import urlencode

from authflow.domain.entities.event import EventKind
from authflow.domain.entities.provider import Provider


SessionStrategy = Literal["jwt", "database"]

SignInPolicy = Callable[..., "Awaitable[Any] | Any"]
ClaimsPolicy = Callable[..., "Awaitable[dict[str, Any]] | dict[str, Any]"]
EventHandler = Callable[[Any], "Awaitable[None] | None"]

SESSION_COOKIE_BASENAME = "authflow.session-token"


@dataclass(frozen=True)
class SessionOptions:
    strategy: SessionStrategy = "jwt"
    max_age_seconds: int = 30 * 24 * 60 * 60

    @property
    def use_jwt(self) -> bool:
        return self.strategy == "jwt"


@dataclass(frozen=True)
class PagesOptions:
    sign_in: str | None = None
    error: str | None = None
    new_user: str | None = None


@dataclass(frozen=True)
class CookieOptions:
    name: str = SESSION_COOKIE_BASENAME
    secure: bool = False
    http_only: bool = True
    same_site: str = "lax"
    path: str = "/"


@dataclass(frozen=True)
class CallbacksOptions:
    sign_in: SignInPolicy | None = None
    jwt: ClaimsPolicy | None = None


@dataclass(frozen=True)
class AuthOptions:
    """Immutable per-deployment configuration handed to every callback invocation."""

    base_url: str
    secret: str
    base_path: str = "/api/auth"
    providers: Mapping[str, Provider] = field(default_factory=lambda: MappingProxyType({}))
    session: SessionOptions = field(default_factory=SessionOptions)
    pages: PagesOptions = field(default_factory=PagesOptions)
    cookie: CookieOptions = field(default_factory=CookieOptions)
    callbacks: CallbacksOptions = field(default_factory=CallbacksOptions)
    events: Mapping[EventKind, EventHandler] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def auth_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.base_path}"

    def sign_in_url(self) -> str:
        return self.pages.sign_in or f"{self.auth_url}/signin"

    def error_url(self, code: str, **params: str) -> str:
        # code may already be percent-encoded (policy messages)
        base = self.pages.error or f"{self.auth_url}/error"
        url = f"{base}?error={code}"
        if params:
            url = f"{url}&{urlencode(params)}"
        return url
