from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Mapping

from authflow.application.dto.auth import CookieInstruction, SessionArtifact
from authflow.application.dto.options import AuthOptions
from authflow.application.ports.token_port import TokenPort
from authflow.domain.entities.user import SessionRecord, User
from authflow.domain.exceptions import SigningFailed

from .auth_common import default_claims, utcnow
from .materialize_user import AccountLinker


logger = logging.getLogger(__name__)


class SessionEstablisher:
    def __init__(self, *, token_port: TokenPort, account_linker: AccountLinker):
        self._token_port = token_port
        self._account_linker = account_linker

    async def establish(
        self,
        options: AuthOptions,
        user: User,
        session: SessionRecord | None = None,
        claims: Mapping[str, Any] | None = None,
    ) -> SessionArtifact:
        if options.session.use_jwt:
            return self._sign(options, user, claims)

        if session is None:
            session = await self._account_linker.create_session(user, options)
        return SessionArtifact(token=session.session_token, expires=session.expires)

    def _sign(self, options: AuthOptions, user: User, claims: Mapping[str, Any] | None) -> SessionArtifact:
        now = utcnow().replace(microsecond=0)
        expires = now + timedelta(seconds=options.session.max_age_seconds)
        payload = {**default_claims(user), **dict(claims or {})}
        payload["iat"] = int(now.timestamp())
        payload["exp"] = int(expires.timestamp())
        try:
            token = self._token_port.encode(payload)
        except Exception as exc:
            logger.exception("session_establisher: signing failed user=%s", user.id)
            raise SigningFailed(str(exc)) from exc
        return SessionArtifact(token=token, expires=expires)


def session_cookie(options: AuthOptions, artifact: SessionArtifact) -> CookieInstruction:
    cookie = options.cookie
    return CookieInstruction(
        name=cookie.name,
        value=artifact.token,
        expires=artifact.expires,
        http_only=cookie.http_only,
        secure=cookie.secure,
        same_site=cookie.same_site,
        path=cookie.path,
    )
