from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

import jwt
from cryptography.fernet import Fernet, InvalidToken

from authflow.application.ports.token_port import TokenPort


logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS512"


def _derive_fernet_key(secret: str) -> bytes:
    digest = hashlib.sha256(f"{secret}:encryption".encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


class JwtTokenService(TokenPort):
    """Signs session claim sets with HS512 and optionally wraps them in a Fernet envelope."""

    def __init__(
        self,
        *,
        secret: str,
        default_max_age_seconds: int,
        encryption: bool = False,
    ):
        if not secret:
            raise ValueError("A signing secret is required.")
        self._secret = secret
        self._default_max_age_seconds = default_max_age_seconds
        self._fernet = Fernet(_derive_fernet_key(secret)) if encryption else None

    def encode(self, claims: Mapping[str, Any], *, max_age_seconds: int | None = None) -> str:
        payload = dict(claims)
        if "exp" not in payload:
            now = utcnow()
            ttl = max_age_seconds if max_age_seconds is not None else self._default_max_age_seconds
            payload.setdefault("iat", int(now.timestamp()))
            payload["exp"] = int((now + timedelta(seconds=ttl)).timestamp())

        token = jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)
        if self._fernet is None:
            return token
        return self._fernet.encrypt(token.encode("utf-8")).decode("ascii")

    def decode(self, token: str) -> dict[str, Any] | None:
        if not token:
            return None
        if self._fernet is not None:
            try:
                token = self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
            except (InvalidToken, UnicodeError, ValueError):
                logger.debug("token_service: decrypt failed")
                return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp"]},
            )
        except jwt.PyJWTError as exc:
            logger.debug("token_service: rejected token error=%s", exc)
            return None
        if not isinstance(payload, dict):
            return None
        return payload

    def generate_session_token(self) -> str:
        return secrets.token_urlsafe(48)

    def hash_verification_token(self, *, token: str) -> str:
        return hashlib.sha256(f"{token}{self._secret}".encode("utf-8")).hexdigest()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
