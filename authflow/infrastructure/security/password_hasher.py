from __future__ import annotations

import logging

from passlib.context import CryptContext

from authflow.application.ports.password_hasher_port import PasswordHasherPort


logger = logging.getLogger(__name__)

DEFAULT_SCHEMES = ("argon2", "bcrypt")


class PasswordHasher(PasswordHasherPort):
    """passlib context; the first scheme hashes, the rest are accepted and marked for upgrade."""

    def __init__(self, *, schemes: tuple[str, ...] | list[str] = DEFAULT_SCHEMES):
        self._ctx = CryptContext(schemes=list(schemes), deprecated="auto")

    def hash(self, plain_password: str) -> str:
        return self._ctx.hash(plain_password)

    def check(self, plain_password: str, password_hash: str) -> tuple[bool, str | None]:
        try:
            matched, replacement = self._ctx.verify_and_update(plain_password, password_hash)
        except (ValueError, TypeError) as exc:
            logger.warning("password_hasher: unreadable stored hash error=%s", exc)
            return False, None
        return bool(matched), replacement
