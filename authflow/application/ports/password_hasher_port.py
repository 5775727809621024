from __future__ import annotations

from typing import Protocol


class PasswordHasherPort(Protocol):
    def hash(self, plain_password: str) -> str:
        ...

    def check(self, plain_password: str, password_hash: str) -> tuple[bool, str | None]:
        """Return whether the password matches and, when the stored hash is outdated, its replacement."""
        ...
