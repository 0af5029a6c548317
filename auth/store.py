"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as forms/store.py).
UserStore is the repository; _row_to_account is the mapper. Route, service
and dependency code never touches SQL directly.

Uniqueness:
  username and email each carry a UNIQUE constraint. create() runs a
  pre-check query for a friendly error, but the constraint is the real
  guarantee: when two registrations race past the pre-check, the second
  INSERT raises IntegrityError and is mapped to the same DuplicateError.

Password hash visibility:
  Read methods return accounts with password_hash=None. Only the login
  lookup passes with_password=True.

Timestamps are stored as fixed-width UTC ISO 8601 strings, so lexicographic
comparison in SQL matches chronological order (record_login relies on this).

Security:
  All queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, MetaData, String, Table, Text, or_, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import UserAccount
from core.db import make_engine
from core.errors import DuplicateError

logger = logging.getLogger("formdesk.auth")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(320), nullable=False, unique=True),  # stored lowercase
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("last_login", String(32)),
)

_DUPLICATE_MESSAGE = "Username or email already exists."


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for UserAccount entities.

    Usage:
        store = UserStore("sqlite:///formdesk.db")
        account = store.create("alice", "alice@x.com", hasher.hash("secret1"))
        found = store.find_by_username_or_email("alice")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_username_or_email(self, identifier: str, with_password: bool = False) -> UserAccount | None:
        """Look up an account whose username or email matches identifier.

        username is compared case-sensitively; email is compared against the
        lowercased identifier. When one record matches by username and a
        different one by email, the username match wins.
        """
        stmt = select(_users).where(
            or_(_users.c.username == identifier, _users.c.email == normalize_email(identifier))
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        if not rows:
            return None
        row = next((r for r in rows if r.username == identifier), rows[0])
        return _row_to_account(row, with_password=with_password)

    def get_by_id(self, user_id: str) -> UserAccount | None:
        """Look up an account by id. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(select(_users).where(_users.c.id == user_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def ensure_available(self, username: str, email: str) -> None:
        """Raise DuplicateError (detail "username" or "email") if either is taken.

        A cheap read. The UNIQUE constraints in create() remain the guarantee.
        """
        conflict = self._find_conflict(username, normalize_email(email))
        if conflict is not None:
            raise DuplicateError(_DUPLICATE_MESSAGE, detail=conflict)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, username: str, email: str, password_hash: str) -> UserAccount:
        """Insert a new account and return it (password_hash elided).

        Raises DuplicateError if username or email is already taken, whether
        the pre-check sees it or the UNIQUE constraint rejects the INSERT.
        """
        email = normalize_email(email)
        self.ensure_available(username, email)

        account = UserAccount(
            id=uuid.uuid4().hex,
            username=username,
            email=email,
            created_at=datetime.now(timezone.utc),
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=account.id,
                        username=account.username,
                        email=account.email,
                        password_hash=password_hash,
                        created_at=_to_iso(account.created_at),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            logger.info("Concurrent registration lost the uniqueness race for %r", username)
            raise DuplicateError(_DUPLICATE_MESSAGE) from exc
        return account

    def record_login(self, user_id: str, timestamp: datetime) -> None:
        """Stamp timestamp as last_login unless a later login is already recorded.

        The conditional UPDATE keeps last_login monotonic when two logins for
        the same account finish out of order.
        """
        stamp = _to_iso(timestamp)
        with self.engine.connect() as conn:
            conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .where(or_(_users.c.last_login.is_(None), _users.c.last_login < stamp))
                .values(last_login=stamp)
            )
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _find_conflict(self, username: str, email: str) -> str | None:
        """Return "username" or "email" for the first taken field, else None."""
        stmt = select(_users.c.username, _users.c.email).where(
            or_(_users.c.username == username, _users.c.email == email)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        for row in rows:
            if row.username == username:
                return "username"
        return "email" if rows else None


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row, with_password: bool = False) -> UserAccount:
    return UserAccount(
        id=row.id,
        username=row.username,
        email=row.email,
        created_at=_from_iso(row.created_at),
        last_login=_from_iso(row.last_login),
        password_hash=row.password_hash if with_password else None,
    )
