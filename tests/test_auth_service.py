"""Unit tests for auth/service.py -- registration and login flows.

The service is async; each test drives it with asyncio.run() so the real
worker-thread offloading (asyncio.to_thread) is exercised.

Covers:
- register then login by username and by email
- wrong password and unknown identifier both raise InvalidCredentials
- successful login records last_login from the injected clock and issues
  a token the TokenService accepts
- a taken username or email is rejected before bcrypt runs
- two concurrent registrations for the same username: one account, one
  DuplicateError
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService
from core.errors import DuplicateError, InvalidCredentials

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService("service-test-secret-0123456789abcdef")


@pytest.fixture
def service(user_store: UserStore, hasher: PasswordHasher, tokens: TokenService) -> AuthService:
    return AuthService(user_store, hasher, tokens, clock=lambda: NOW)


def test_register_then_login_by_username(service: AuthService, tokens: TokenService) -> None:
    created = asyncio.run(service.register("alice", "alice@x.com", "secret1"))
    account, token = asyncio.run(service.login("alice", "secret1"))
    assert account.id == created.id
    assert account.password_hash is None
    claims = tokens.verify(token)
    assert claims.user_id == created.id
    assert claims.username == "alice"


def test_login_by_email_any_case(service: AuthService) -> None:
    asyncio.run(service.register("alice", "alice@x.com", "secret1"))
    account, _ = asyncio.run(service.login("Alice@X.com", "secret1"))
    assert account.username == "alice"


def test_login_records_last_login(service: AuthService, user_store: UserStore) -> None:
    created = asyncio.run(service.register("alice", "alice@x.com", "secret1"))
    account, _ = asyncio.run(service.login("alice", "secret1"))
    assert account.last_login == NOW
    assert user_store.get_by_id(created.id).last_login == NOW


def test_wrong_password(service: AuthService, user_store: UserStore) -> None:
    created = asyncio.run(service.register("alice", "alice@x.com", "secret1"))
    with pytest.raises(InvalidCredentials):
        asyncio.run(service.login("alice", "wrong"))
    assert user_store.get_by_id(created.id).last_login is None


def test_unknown_identifier(service: AuthService) -> None:
    with pytest.raises(InvalidCredentials):
        asyncio.run(service.login("nobody", "secret1"))


def test_stored_hash_is_not_plaintext(service: AuthService, user_store: UserStore, hasher: PasswordHasher) -> None:
    asyncio.run(service.register("alice", "alice@x.com", "secret1"))
    stored = user_store.find_by_username_or_email("alice", with_password=True).password_hash
    assert stored != "secret1"
    assert hasher.verify("secret1", stored)


def test_concurrent_duplicate_registration(service: AuthService) -> None:
    async def race():
        return await asyncio.gather(
            service.register("alice", "alice1@x.com", "secret1"),
            service.register("alice", "alice2@x.com", "secret1"),
            return_exceptions=True,
        )

    results = asyncio.run(race())
    errors = [r for r in results if isinstance(r, DuplicateError)]
    accounts = [r for r in results if not isinstance(r, BaseException)]
    assert len(errors) == 1
    assert len(accounts) == 1


def test_duplicate_rejected_before_hashing(service: AuthService, hasher: PasswordHasher, monkeypatch) -> None:
    asyncio.run(service.register("alice", "alice@x.com", "secret1"))
    calls = []
    monkeypatch.setattr(hasher, "hash", lambda plain: calls.append(plain) or "unused")
    with pytest.raises(DuplicateError) as exc_info:
        asyncio.run(service.register("alice", "other@x.com", "secret1"))
    assert exc_info.value.detail == "username"
    with pytest.raises(DuplicateError) as exc_info:
        asyncio.run(service.register("alice2", "ALICE@x.com", "secret1"))
    assert exc_info.value.detail == "email"
    assert calls == []
