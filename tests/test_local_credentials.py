from __future__ import annotations

import pytest

from authflow.application.use_cases.authorize_local_credentials import LocalCredentialsAuthorizer
from authflow.domain.entities.user import User
from authflow.infrastructure.security.password_hasher import PasswordHasher


class FakeCredentialsPort:
    def __init__(self, entries: dict[str, tuple[User, str]]):
        self.entries = entries
        self.lookups: list[str] = []
        self.rehashed: dict[str, str] = {}

    async def get_local_credentials_by_email(self, *, email: str) -> tuple[User, str] | None:
        self.lookups.append(email)
        return self.entries.get(email)

    async def set_password_hash(self, *, user_id: str, password_hash: str) -> None:
        self.rehashed[user_id] = password_hash


HASHER = PasswordHasher(schemes=["pbkdf2_sha256", "md5_crypt"])
ALICE = User(id="u-1", name="Alice", email="alice@example.com", image=None)


def _authorizer(port: FakeCredentialsPort) -> LocalCredentialsAuthorizer:
    return LocalCredentialsAuthorizer(credentials_port=port, password_hasher=HASHER)


@pytest.mark.asyncio
async def test_matching_password_returns_user():
    port = FakeCredentialsPort({"alice@example.com": (ALICE, HASHER.hash("correct horse"))})

    user = await _authorizer(port)({"email": " Alice@Example.com", "password": "correct horse"})

    assert user == ALICE
    assert port.lookups == ["alice@example.com"]


@pytest.mark.asyncio
async def test_wrong_password_returns_none():
    port = FakeCredentialsPort({"alice@example.com": (ALICE, HASHER.hash("correct horse"))})

    assert await _authorizer(port)({"email": "alice@example.com", "password": "battery"}) is None


@pytest.mark.asyncio
async def test_unknown_email_returns_none():
    assert await _authorizer(FakeCredentialsPort({}))({"email": "bob@example.com", "password": "x"}) is None


@pytest.mark.asyncio
async def test_missing_fields_skip_lookup():
    port = FakeCredentialsPort({})

    assert await _authorizer(port)({"email": "alice@example.com"}) is None
    assert port.lookups == []


def test_hasher_rejects_malformed_hash():
    assert HASHER.check("secret", "not-a-hash") == (False, None)


@pytest.mark.asyncio
async def test_legacy_hash_is_upgraded_on_sign_in():
    legacy_hash = PasswordHasher(schemes=["md5_crypt"]).hash("correct horse")
    port = FakeCredentialsPort({"alice@example.com": (ALICE, legacy_hash)})

    user = await _authorizer(port)({"email": "alice@example.com", "password": "correct horse"})

    assert user == ALICE
    assert port.rehashed["u-1"].startswith("$pbkdf2-sha256$")


@pytest.mark.asyncio
async def test_current_hash_is_not_rewritten():
    port = FakeCredentialsPort({"alice@example.com": (ALICE, HASHER.hash("correct horse"))})

    await _authorizer(port)({"email": "alice@example.com", "password": "correct horse"})

    assert port.rehashed == {}
