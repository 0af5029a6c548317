"""
api/routes/dashboard.py -- Session-gated landing endpoint.

Echoes the identity carried by the session token. It reads nothing from the
database: the claims are all it needs.
"""

import logging

from fastapi import APIRouter, Depends

from api.models import DashboardResponse, SessionInfo
from auth.dependencies import require_session
from auth.models import SessionClaims

logger = logging.getLogger("formdesk.api")

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(session: SessionClaims = Depends(require_session)) -> DashboardResponse:
    logger.info("Dashboard opened by %s", session.username)
    return DashboardResponse(user=SessionInfo.from_claims(session))
