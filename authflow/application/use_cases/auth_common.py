from __future__ import annotations

import inspect
from datetime import datetime, timezone
from typing import Any, Mapping

from authflow.domain.entities.user import Account, Profile, User


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def as_user(value: Profile | User | Mapping[str, Any] | Any, *, fallback_id: str | None = None) -> User:
    if isinstance(value, User):
        return value
    if isinstance(value, Profile):
        return User(
            id=value.id or fallback_id or "",
            name=value.name,
            email=value.email,
            image=value.image,
        )
    if isinstance(value, Mapping):
        raw_id = value.get("id")
        return User(
            id=str(raw_id) if raw_id is not None else (fallback_id or ""),
            name=value.get("name"),
            email=value.get("email"),
            image=value.get("image") or value.get("picture"),
        )
    raw_id = getattr(value, "id", None)
    return User(
        id=str(raw_id) if raw_id is not None else (fallback_id or ""),
        name=getattr(value, "name", None),
        email=getattr(value, "email", None),
        image=getattr(value, "image", None),
    )


def default_claims(user: User) -> dict[str, Any]:
    claims: dict[str, Any] = {
        "name": user.name,
        "email": user.email,
        "picture": user.image,
    }
    if user.id:
        claims["sub"] = user.id
    return claims


def describe_account(account: Account) -> str:
    return f"{account.type.value}:{account.provider}"
