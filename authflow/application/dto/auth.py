from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from authflow.domain.entities.user import Account, Profile, SessionRecord, User


@dataclass(frozen=True)
class CallbackInput:
    provider_id: str
    method: str = "GET"
    query: Mapping[str, str] = field(default_factory=dict)
    body: Mapping[str, Any] = field(default_factory=dict)
    session_token: str | None = None
    csrf_token: str | None = None
    # Same-origin checked by the router; None otherwise.
    callback_url: str | None = None


@dataclass(frozen=True)
class Redirect:
    url: str
    status_code: int = 302


@dataclass(frozen=True)
class Rejection:
    status_code: int
    detail: str


@dataclass(frozen=True)
class CookieInstruction:
    name: str
    value: str
    expires: datetime | None
    http_only: bool = True
    secure: bool = False
    same_site: str = "lax"
    path: str = "/"


@dataclass(frozen=True)
class CallbackOutput:
    outcome: Redirect | Rejection
    cookies: tuple[CookieInstruction, ...] = ()


@dataclass(frozen=True)
class OAuthProfileResult:
    profile: Profile | None
    account: Account | None
    raw_profile: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class ResolvedIdentity:
    profile: Profile | User
    account: Account
    # handed to the sign-in policy
    provider_payload: Any = None
    # handed to the claims policy
    claims_payload: Any = None


@dataclass(frozen=True)
class MaterializeResult:
    user: User
    session: SessionRecord | None
    is_new_user: bool


@dataclass(frozen=True)
class SessionArtifact:
    token: str
    expires: datetime | None


class DecisionKind(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    REDIRECT = "redirect"
    FAULT = "fault"


@dataclass(frozen=True)
class SignInDecision:
    kind: DecisionKind
    url: str | None = None
    message: str | None = None

    @classmethod
    def allow(cls) -> SignInDecision:
        return cls(DecisionKind.ALLOW)

    @classmethod
    def deny(cls) -> SignInDecision:
        return cls(DecisionKind.DENY)

    @classmethod
    def redirect(cls, url: str) -> SignInDecision:
        return cls(DecisionKind.REDIRECT, url=url)

    @classmethod
    def fault(cls, message: str) -> SignInDecision:
        return cls(DecisionKind.FAULT, message=message)

    @property
    def allowed(self) -> bool:
        return self.kind is DecisionKind.ALLOW


@dataclass(frozen=True)
class ProviderSummary:
    id: str
    name: str
    type: str
    sign_in_url: str
    callback_url: str
