"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

The digest is self-describing ("$2b$10$<salt><hash>"): cost and salt travel
with it, so raising `rounds` later only affects new digests and older ones
keep verifying.

Layer rule: no imports from api/, forms/, or core/.
"""

from __future__ import annotations

import bcrypt

# bcrypt ignores everything past this many bytes of input. The API layer
# rejects longer passwords so two different passwords never share a digest.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted, adaptive one-way hashing for low-entropy secrets.

    Usage:
        hasher = PasswordHasher(rounds=10)
        digest = hasher.hash("secret1")
        hasher.verify("secret1", digest)   # True
    """

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        """Return a bcrypt digest of plain with a fresh random salt."""
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, digest: str) -> bool:
        """Return True if plain matches digest. A malformed digest returns False."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), digest.encode("utf-8"))
        except (ValueError, TypeError):
            return False
