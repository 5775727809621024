from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ProviderType(str, Enum):
    OAUTH = "oauth"
    EMAIL = "email"
    CREDENTIALS = "credentials"


@dataclass(frozen=True)
class Profile:
    email: str | None
    name: str | None = None
    image: str | None = None
    id: str | None = None


@dataclass(frozen=True)
class User:
    id: str
    name: str | None
    email: str | None
    image: str | None
    email_verified: datetime | None = None


@dataclass(frozen=True)
class Account:
    provider: str
    type: ProviderType
    provider_account_id: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    access_token_expires: datetime | None = None


@dataclass(frozen=True)
class SessionRecord:
    session_token: str
    user_id: str
    expires: datetime


@dataclass(frozen=True)
class VerificationRequest:
    identifier: str
    token: str
    expires: datetime
