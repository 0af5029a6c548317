"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; routes map these onto the Pydantic response models in api/models.py.

Layer rule: no imports from api/, forms/, or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class UserAccount:
    """A registered user.

    password_hash is None on every read path except the login lookup, which
    asks for it explicitly (UserStore.find_by_username_or_email(with_password=True)).
    It is excluded from repr so a logged account never leaks the digest.

    last_login is None until the first successful login.
    """

    id: str
    username: str
    email: str
    created_at: datetime
    last_login: datetime | None = None
    password_hash: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class SessionClaims:
    """Identity carried by a verified session token. Never persisted."""

    user_id: str
    username: str
    issued_at: datetime
    expires_at: datetime
