from __future__ import annotations

import logging
from typing import Any, Mapping

from authflow.application.ports.auth_port import LocalCredentialsPort
from authflow.application.ports.password_hasher_port import PasswordHasherPort
from authflow.domain.entities.user import User

from .auth_common import normalize_email


logger = logging.getLogger(__name__)


class LocalCredentialsAuthorizer:
    """``authorize`` step for the credentials provider backed by stored password hashes."""

    def __init__(
        self,
        *,
        credentials_port: LocalCredentialsPort,
        password_hasher: PasswordHasherPort,
    ):
        self._credentials_port = credentials_port
        self._password_hasher = password_hasher

    async def __call__(self, credentials: Mapping[str, Any]) -> User | None:
        email = normalize_email(str(credentials.get("email") or ""))
        password = str(credentials.get("password") or "")
        if not email or not password:
            return None

        result = await self._credentials_port.get_local_credentials_by_email(email=email)
        if result is None:
            logger.info("local_credentials: unknown email")
            return None

        user, password_hash = result
        matched, replacement = self._password_hasher.check(password, password_hash) if password_hash else (False, None)
        if not matched:
            logger.info("local_credentials: password mismatch user=%s", user.id)
            return None
        if replacement:
            await self._credentials_port.set_password_hash(user_id=user.id, password_hash=replacement)
            logger.info("local_credentials: upgraded password hash user=%s", user.id)
        return user
