"""
auth/service.py -- Registration and login flows.

AuthService composes the Credential Store, Password Hasher and Token Service.
Every blocking call (bcrypt, database I/O) runs in a worker thread via
asyncio.to_thread so a slow hash never stalls other requests on the event loop.

Timing equalization: login always runs bcrypt, even for an unknown
identifier (against a dummy digest computed once at construction). Response
time therefore does not reveal whether a username or email exists.

Layer rule: no imports from api/ or forms/.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from auth.models import UserAccount
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService, utcnow
from core.errors import InvalidCredentials

logger = logging.getLogger("formdesk.auth")


class AuthService:
    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._tokens = tokens
        self._clock = clock
        self._dummy_digest = hasher.hash(secrets.token_hex(16))

    async def register(self, username: str, email: str, password: str) -> UserAccount:
        """Hash password and create the account. Raises DuplicateError on collision.

        Taken names are rejected before bcrypt runs; a registration that races
        past this check is still stopped by the store.
        """
        await asyncio.to_thread(self._store.ensure_available, username, email)
        digest = await asyncio.to_thread(self._hasher.hash, password)
        account = await asyncio.to_thread(self._store.create, username, email, digest)
        logger.info("Registered user %s (%s)", account.username, account.id)
        return account

    async def login(self, identifier: str, password: str) -> tuple[UserAccount, str]:
        """Check credentials and return (account, session token).

        Unknown identifier and wrong password raise the same
        InvalidCredentials so callers cannot tell them apart.
        """
        account = await asyncio.to_thread(self._store.find_by_username_or_email, identifier, with_password=True)
        if account is None or account.password_hash is None:
            await asyncio.to_thread(self._hasher.verify, password, self._dummy_digest)
            logger.info("Login failed: unknown identifier")
            raise InvalidCredentials()
        if not await asyncio.to_thread(self._hasher.verify, password, account.password_hash):
            logger.info("Login failed: bad password for user %s", account.id)
            raise InvalidCredentials()

        now = self._clock()
        await asyncio.to_thread(self._store.record_login, account.id, now)
        token = self._tokens.issue(account.id, account.username)
        logger.info("User %s logged in", account.id)
        return replace(account, last_login=now, password_hash=None), token
