from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, TypeVar
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from authflow.application.ports.auth_port import AuthPort, LocalCredentialsPort
from authflow.domain.entities.user import Account, Profile, SessionRecord, User, VerificationRequest
from authflow.infrastructure.db.mappers.accounts_mapper import (
    map_model_to_session,
    map_model_to_user,
    map_model_to_verification_request,
)
from authflow.infrastructure.db.models.accounts import (
    AccountModel,
    SessionModel,
    UserModel,
    VerificationTokenModel,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")


class SqlAccountsRepository(AuthPort, LocalCredentialsPort):
    """Adapter over a synchronous SQLAlchemy engine; each call runs in a worker thread."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    async def _run(self, fn: Callable[[Session], T]) -> T:
        def _tx() -> T:
            with self._session_factory() as session:
                with session.begin():
                    return fn(session)

        return await asyncio.to_thread(_tx)

    async def get_user(self, *, user_id: str) -> User | None:
        def _q(session: Session) -> User | None:
            model = session.get(UserModel, user_id)
            return map_model_to_user(model) if model is not None else None

        return await self._run(_q)

    async def get_user_by_email(self, *, email: str) -> User | None:
        def _q(session: Session) -> User | None:
            model = session.scalars(select(UserModel).where(UserModel.email == email).limit(1)).first()
            return map_model_to_user(model) if model is not None else None

        return await self._run(_q)

    async def get_user_by_provider_account_id(
        self,
        *,
        provider: str,
        provider_account_id: str,
    ) -> User | None:
        def _q(session: Session) -> User | None:
            stmt = (
                select(UserModel)
                .join(AccountModel, AccountModel.user_id == UserModel.id)
                .where(
                    AccountModel.provider == provider,
                    AccountModel.provider_account_id == provider_account_id,
                )
                .limit(1)
            )
            model = session.scalars(stmt).first()
            return map_model_to_user(model) if model is not None else None

        return await self._run(_q)

    async def create_user(self, *, profile: Profile, email_verified: datetime | None) -> User:
        def _q(session: Session) -> User:
            model = UserModel(
                id=str(uuid4()),
                name=profile.name,
                email=profile.email,
                image=profile.image,
                email_verified=email_verified,
            )
            session.add(model)
            session.flush()
            return map_model_to_user(model)

        user = await self._run(_q)
        logger.info("accounts_repository: created user id=%s", user.id)
        return user

    async def update_user(self, *, user: User) -> User:
        def _q(session: Session) -> User:
            model = session.get(UserModel, user.id)
            if model is None:
                raise LookupError(f"User {user.id} not found.")
            model.name = user.name
            model.email = user.email
            model.image = user.image
            model.email_verified = user.email_verified
            session.flush()
            return map_model_to_user(model)

        return await self._run(_q)

    async def set_password_hash(self, *, user_id: str, password_hash: str) -> None:
        def _q(session: Session) -> None:
            model = session.get(UserModel, user_id)
            if model is None:
                raise LookupError(f"User {user_id} not found.")
            model.password_hash = password_hash

        await self._run(_q)

    async def link_account(self, *, user_id: str, account: Account) -> None:
        def _q(session: Session) -> None:
            session.add(
                AccountModel(
                    id=str(uuid4()),
                    user_id=user_id,
                    provider=account.provider,
                    type=account.type.value,
                    provider_account_id=account.provider_account_id or "",
                    access_token=account.access_token,
                    refresh_token=account.refresh_token,
                    access_token_expires=account.access_token_expires,
                )
            )

        await self._run(_q)
        logger.info("accounts_repository: linked account provider=%s user=%s", account.provider, user_id)

    async def create_session(self, *, user_id: str, session_token: str, expires: datetime) -> SessionRecord:
        def _q(session: Session) -> SessionRecord:
            model = SessionModel(session_token=session_token, user_id=user_id, expires=expires)
            session.add(model)
            session.flush()
            return map_model_to_session(model)

        return await self._run(_q)

    async def get_session(self, *, session_token: str) -> SessionRecord | None:
        def _q(session: Session) -> SessionRecord | None:
            model = session.get(SessionModel, session_token)
            return map_model_to_session(model) if model is not None else None

        return await self._run(_q)

    async def delete_session(self, *, session_token: str) -> None:
        def _q(session: Session) -> None:
            session.execute(delete(SessionModel).where(SessionModel.session_token == session_token))

        await self._run(_q)

    async def get_verification_request(
        self,
        *,
        identifier: str,
        hashed_token: str,
    ) -> VerificationRequest | None:
        def _q(session: Session) -> VerificationRequest | None:
            model = session.get(VerificationTokenModel, (identifier, hashed_token))
            return map_model_to_verification_request(model) if model is not None else None

        return await self._run(_q)

    async def delete_verification_request(self, *, identifier: str, hashed_token: str) -> bool:
        def _q(session: Session) -> bool:
            result = session.execute(
                delete(VerificationTokenModel).where(
                    VerificationTokenModel.identifier == identifier,
                    VerificationTokenModel.token == hashed_token,
                )
            )
            return (result.rowcount or 0) > 0

        return await self._run(_q)

    async def get_local_credentials_by_email(self, *, email: str) -> tuple[User, str] | None:
        def _q(session: Session) -> tuple[User, str] | None:
            model = session.scalars(select(UserModel).where(UserModel.email == email).limit(1)).first()
            if model is None or not model.password_hash:
                return None
            return map_model_to_user(model), model.password_hash

        return await self._run(_q)
