from __future__ import annotations

from typing import Any, Mapping, Protocol


class TokenPort(Protocol):
    def encode(self, claims: Mapping[str, Any], *, max_age_seconds: int | None = None) -> str:
        ...

    def decode(self, token: str) -> dict[str, Any] | None:
        ...

    def generate_session_token(self) -> str:
        ...

    def hash_verification_token(self, *, token: str) -> str:
        ...
