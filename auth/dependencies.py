"""
auth/dependencies.py -- FastAPI Depends() helper for the session gate.

One transport only: the httpOnly "authToken" cookie set by POST /login.
There is no Authorization header fallback.

require_session() runs two steps:
  1. Extract -- no cookie raises Unauthenticated (401).
  2. Verify  -- any VerificationError (malformed, bad signature, expired)
                raises Forbidden (403). The specific reason is logged.
On success the SessionClaims are attached to request.state.session and
returned to the route. The gate never reads or writes the user store.

Layer rule: no imports from forms/. auth/dependencies.py may import from
fastapi (for Request) because this module is part of the FastAPI
dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import SessionClaims
from auth.tokens import AUTH_COOKIE, TokenService, VerificationError
from core.errors import Forbidden, Unauthenticated

logger = logging.getLogger("formdesk.auth")


def require_session(request: Request) -> SessionClaims:
    """Require a valid session cookie.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(session: SessionClaims = Depends(require_session)): ...
    """
    token = request.cookies.get(AUTH_COOKIE)
    if not token:
        raise Unauthenticated("Access token is required.")

    tokens: TokenService = request.app.state.tokens
    try:
        claims = tokens.verify(token)
    except VerificationError as exc:
        logger.info("Rejected session token on %s: %s", request.url.path, exc.reason.value)
        raise Forbidden("Invalid or expired token.") from exc

    request.state.session = claims
    return claims
