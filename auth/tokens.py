"""
auth/tokens.py -- Session token issuance/verification and the session cookie.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the process-wide
       SECRET_KEY and carry sub (user id), username, iat and exp. There is no
       server-side session table and no revocation: a token is valid until
       exp, whatever happens to the account in the meantime.

  Failure kinds: verify() raises MalformedToken, BadSignature or TokenExpired.
       The Auth Gate treats all three the same (403) but logs the reason.
       Header and payload are parsed here before the signature check so a
       structurally broken token is reported as malformed, while anything
       wrong with the signature segment is reported as a bad signature.

  Clock: expiry is checked against an injectable clock instead of the JWT
       library's own wall clock, so tests can move time forward.

  Cookie: httpOnly (no JS access), samesite=strict (never sent on
       cross-site requests), secure in production, max_age equal to the
       token ttl so cookie and token expire together.

Layer rule: no imports from api/, forms/, or core/.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from enum import Enum

from jose import JWTError, jwt
from jose.exceptions import JWTClaimsError
from jose.utils import base64url_decode, base64url_encode

from auth.models import SessionClaims

_ALGORITHM = "HS256"

AUTH_COOKIE = "authToken"

DEFAULT_TTL_SECONDS = 24 * 60 * 60


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Verification errors
# ---------------------------------------------------------------------------


class TokenFailure(str, Enum):
    malformed = "malformed"
    bad_signature = "bad_signature"
    expired = "expired"


class VerificationError(Exception):
    """Base class for every reason a session token is rejected."""

    reason: TokenFailure

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.reason.value)


class MalformedToken(VerificationError):
    reason = TokenFailure.malformed


class BadSignature(VerificationError):
    reason = TokenFailure.bad_signature


class TokenExpired(VerificationError):
    reason = TokenFailure.expired


# ---------------------------------------------------------------------------
# Token service
# ---------------------------------------------------------------------------


class TokenService:
    """Mint and check HS256 session tokens.

    Usage:
        tokens = TokenService(settings.secret_key, ttl_seconds=86400)
        token = tokens.issue(user.id, user.username)
        claims = tokens.verify(token)    # SessionClaims or VerificationError
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty.")
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, user_id: str, username: str, ttl_seconds: int | None = None) -> str:
        """Encode a signed token for user_id/username expiring ttl_seconds from now.

        Args:
            user_id:     Opaque account id, stored as the sub claim.
            username:    Stored alongside so handlers need no DB lookup.
            ttl_seconds: Lifetime override. None uses the service default.
        """
        now = self._clock()
        duration = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        payload = {
            "sub": user_id,
            "username": username,
            "iat": now,
            "exp": now + timedelta(seconds=duration),
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> SessionClaims:
        """Return the token's claims, or raise the matching VerificationError."""
        _read_unverified(token)
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTClaimsError as exc:
            # Signature checked out; a registered claim has the wrong type.
            raise MalformedToken(str(exc)) from exc
        except JWTError as exc:
            raise BadSignature(str(exc)) from exc

        try:
            user_id = payload["sub"]
            username = payload["username"]
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedToken("Missing or invalid claims.") from exc

        if self._clock() > expires_at:
            raise TokenExpired(f"Token expired at {expires_at.isoformat()}.")

        return SessionClaims(
            user_id=str(user_id),
            username=str(username),
            issued_at=issued_at,
            expires_at=expires_at,
        )


def _read_unverified(token: str) -> None:
    """Decode the header and payload segments without checking the signature.

    Raises MalformedToken if the token is not three dot-separated segments or
    if either of the first two is not a base64url-encoded JSON object.

    Raises BadSignature if the signature segment is not canonical base64url.
    The decoder ignores the unused low bits of the final character, so two
    different segments can decode to the same bytes; only the canonical
    spelling is accepted. Whether the bytes are the right HMAC is left to
    jwt.decode().
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedToken("Expected three dot-separated segments.")
    try:
        header = json.loads(base64url_decode(parts[0].encode("ascii")))
        payload = json.loads(base64url_decode(parts[1].encode("ascii")))
    except ValueError as exc:
        raise MalformedToken("Header or payload is not base64url JSON.") from exc
    if not isinstance(header, dict) or not isinstance(payload, dict):
        raise MalformedToken("Header and payload must be JSON objects.")
    try:
        signature = base64url_decode(parts[2].encode("ascii"))
    except ValueError as exc:
        raise BadSignature("Signature is not base64url.") from exc
    if base64url_encode(signature).decode("ascii") != parts[2]:
        raise BadSignature("Signature is not in canonical base64url form.")


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, max_age: int, secure: bool) -> None:
    """Write the session token as an httpOnly, samesite=strict cookie.

    Args:
        response: FastAPI/Starlette response object.
        token:    Encoded JWT string.
        max_age:  Cookie lifetime in seconds; pass the token ttl.
        secure:   True in production so the cookie only travels over HTTPS.
    """
    response.set_cookie(
        AUTH_COOKIE,
        value=token,
        httponly=True,
        samesite="strict",
        secure=secure,
        max_age=max_age,
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(AUTH_COOKIE, httponly=True, samesite="strict")
