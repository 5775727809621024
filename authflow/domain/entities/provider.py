from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

from authflow.domain.entities.user import ProviderType


AuthorizeFn = Callable[[Mapping[str, Any]], "Awaitable[Any] | Any"]


@dataclass(frozen=True)
class CredentialField:
    label: str | None = None
    type: str = "text"
    placeholder: str | None = None


@dataclass(frozen=True)
class Provider:
    id: str
    name: str
    type: ProviderType
    authorize: AuthorizeFn | None = None
    credentials: Mapping[str, CredentialField] = field(default_factory=dict)
    client_id: str | None = None
    client_secret: str | None = None
