from __future__ import annotations

import logging
from dataclasses import replace
from datetime import timedelta

from authflow.application.dto.auth import MaterializeResult
from authflow.application.dto.options import AuthOptions
from authflow.application.ports.auth_port import AuthPort
from authflow.application.ports.token_port import TokenPort
from authflow.domain.entities.event import EventKind, LifecycleEvent
from authflow.domain.entities.user import Account, Profile, ProviderType, SessionRecord, User
from authflow.domain.exceptions import AccountNotLinked, CreateUserFailed

from .auth_common import as_user, normalize_email, utcnow
from .dispatch_events import EventDispatcher


logger = logging.getLogger(__name__)


class AccountLinker:
    """Resolve, link or create the durable user behind a verified identity."""

    def __init__(
        self,
        *,
        token_port: TokenPort,
        dispatcher: EventDispatcher,
        auth_port: AuthPort | None = None,
    ):
        self._token_port = token_port
        self._dispatcher = dispatcher
        self._auth_port = auth_port

    async def materialize(
        self,
        session_token: str | None,
        profile: Profile | User,
        account: Account,
        options: AuthOptions,
    ) -> MaterializeResult:
        if account.type not in (ProviderType.OAUTH, ProviderType.EMAIL):
            raise ValueError(f"Provider type {account.type.value} cannot be materialized.")

        if self._auth_port is None:
            # No database: the profile is the user and nothing is persisted.
            user = as_user(profile, fallback_id=account.provider_account_id)
            return MaterializeResult(user=user, session=None, is_new_user=False)

        current_user, current_session = await self._signed_in_user(session_token, options)

        if account.type is ProviderType.EMAIL:
            return await self._materialize_email(session_token, profile, current_user, options)
        return await self._materialize_oauth(profile, account, current_user, current_session, options)

    async def _materialize_email(
        self,
        session_token: str | None,
        profile: Profile | User,
        current_user: User | None,
        options: AuthOptions,
    ) -> MaterializeResult:
        auth_port = self._require_port()
        use_jwt = options.session.use_jwt
        user_by_email = await auth_port.get_user_by_email(email=profile.email) if profile.email else None

        if user_by_email is not None:
            # Signing in as somebody else ends the current database session.
            if current_user is not None and current_user.id != user_by_email.id and not use_jwt:
                await auth_port.delete_session(session_token=session_token or "")
            user = await auth_port.update_user(user=replace(user_by_email, email_verified=utcnow()))
            self._emit(options, LifecycleEvent(kind=EventKind.UPDATE_USER, user=user))
            is_new_user = False
        else:
            if current_user is not None and not use_jwt:
                await auth_port.delete_session(session_token=session_token or "")
            user = await self._create_user(_as_profile(profile), email_verified=True)
            self._emit(options, LifecycleEvent(kind=EventKind.CREATE_USER, user=user))
            is_new_user = True

        session = None if use_jwt else await self.create_session(user, options)
        return MaterializeResult(user=user, session=session, is_new_user=is_new_user)

    async def _materialize_oauth(
        self,
        profile: Profile | User,
        account: Account,
        current_user: User | None,
        current_session: SessionRecord | None,
        options: AuthOptions,
    ) -> MaterializeResult:
        auth_port = self._require_port()
        use_jwt = options.session.use_jwt

        user_by_account = await auth_port.get_user_by_provider_account_id(
            provider=account.provider,
            provider_account_id=account.provider_account_id or "",
        )
        if user_by_account is not None:
            if current_user is not None:
                if str(user_by_account.id) == str(current_user.id):
                    return MaterializeResult(user=current_user, session=current_session, is_new_user=False)
                logger.info(
                    "account_linker: account %s:%s belongs to another user",
                    account.provider,
                    account.provider_account_id,
                )
                raise AccountNotLinked("Account is already linked to a different user.")
            session = None if use_jwt else await self.create_session(user_by_account, options)
            return MaterializeResult(user=user_by_account, session=session, is_new_user=False)

        if current_user is not None:
            await auth_port.link_account(user_id=current_user.id, account=account)
            self._emit(options, LifecycleEvent(kind=EventKind.LINK_ACCOUNT, user=current_user, account=account))
            return MaterializeResult(user=current_user, session=current_session, is_new_user=False)

        profile = _as_profile(profile)
        if profile.email:
            profile = replace(profile, email=normalize_email(profile.email))
        user_by_email = await auth_port.get_user_by_email(email=profile.email) if profile.email else None
        if user_by_email is not None:
            # An email match never links implicitly.
            logger.info("account_linker: email already registered, refusing to link %s", account.provider)
            raise AccountNotLinked("Email is already linked to a different account.")

        user = await self._create_user(_as_profile(profile), email_verified=False)
        self._emit(options, LifecycleEvent(kind=EventKind.CREATE_USER, user=user))
        await auth_port.link_account(user_id=user.id, account=account)
        self._emit(options, LifecycleEvent(kind=EventKind.LINK_ACCOUNT, user=user, account=account))
        session = None if use_jwt else await self.create_session(user, options)
        return MaterializeResult(user=user, session=session, is_new_user=True)

    async def create_session(self, user: User, options: AuthOptions) -> SessionRecord:
        auth_port = self._require_port()
        expires = utcnow() + timedelta(seconds=options.session.max_age_seconds)
        return await auth_port.create_session(
            user_id=user.id,
            session_token=self._token_port.generate_session_token(),
            expires=expires,
        )

    async def _signed_in_user(
        self,
        session_token: str | None,
        options: AuthOptions,
    ) -> tuple[User | None, SessionRecord | None]:
        if not session_token:
            return None, None
        auth_port = self._require_port()
        if options.session.use_jwt:
            claims = self._token_port.decode(session_token)
            user_id = claims.get("sub") if claims else None
            if not user_id:
                return None, None
            return await auth_port.get_user(user_id=str(user_id)), None

        session = await auth_port.get_session(session_token=session_token)
        if session is None or session.expires <= utcnow():
            return None, None
        user = await auth_port.get_user(user_id=session.user_id)
        return user, (session if user is not None else None)

    async def _create_user(self, profile: Profile, *, email_verified: bool) -> User:
        auth_port = self._require_port()
        try:
            return await auth_port.create_user(
                profile=profile,
                email_verified=utcnow() if email_verified else None,
            )
        except Exception as exc:
            logger.error("account_linker: create_user failed email=%s error=%s", profile.email, exc)
            raise CreateUserFailed(str(exc)) from exc

    def _emit(self, options: AuthOptions, event: LifecycleEvent) -> None:
        self._dispatcher.dispatch(options.events, event)

    def _require_port(self) -> AuthPort:
        if self._auth_port is None:
            raise RuntimeError("Adapter is required for this operation.")
        return self._auth_port


def _as_profile(value: Profile | User) -> Profile:
    if isinstance(value, Profile):
        return value
    return Profile(email=value.email, name=value.name, image=value.image)
