from __future__ import annotations

from datetime import datetime
from typing import Protocol

from authflow.domain.entities.user import Account, Profile, SessionRecord, User, VerificationRequest


class AuthPort(Protocol):
    async def get_user(self, *, user_id: str) -> User | None:
        ...

    async def get_user_by_email(self, *, email: str) -> User | None:
        ...

    async def get_user_by_provider_account_id(
        self,
        *,
        provider: str,
        provider_account_id: str,
    ) -> User | None:
        ...

    async def create_user(self, *, profile: Profile, email_verified: datetime | None) -> User:
        ...

    async def update_user(self, *, user: User) -> User:
        ...

    async def link_account(self, *, user_id: str, account: Account) -> None:
        ...

    async def create_session(self, *, user_id: str, session_token: str, expires: datetime) -> SessionRecord:
        ...

    async def get_session(self, *, session_token: str) -> SessionRecord | None:
        ...

    async def delete_session(self, *, session_token: str) -> None:
        ...

    async def get_verification_request(
        self,
        *,
        identifier: str,
        hashed_token: str,
    ) -> VerificationRequest | None:
        ...

    async def delete_verification_request(self, *, identifier: str, hashed_token: str) -> bool:
        """Delete atomically; return False when nothing was deleted."""
        ...


class LocalCredentialsPort(Protocol):
    async def get_local_credentials_by_email(self, *, email: str) -> tuple[User, str] | None:
        ...

    async def set_password_hash(self, *, user_id: str, password_hash: str) -> None:
        ...
