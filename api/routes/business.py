"""
api/routes/business.py -- Business form submission and retrieval.

Routes:
  POST /business/form      -- submit a form; 201
  GET  /business/userData  -- the caller's most recent form; 404 if none
  GET  /business/forms     -- all of the caller's forms, newest first

Every route requires a session. Forms are owned by the session's user_id and
looked up by that id, never by a client-supplied key.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Request

from api.models import BusinessFormCreate, BusinessFormCreated, BusinessFormResponse
from auth.dependencies import require_session
from auth.models import SessionClaims
from core.errors import NotFound
from forms.store import FormStore

# Auth policy: every route requires a session (require_session on each handler,
# which also hands the claims to the route).
router = APIRouter(prefix="/business")


@router.post("/form", response_model=BusinessFormCreated, status_code=201)
async def submit_form(
    request: Request,
    body: BusinessFormCreate,
    session: SessionClaims = Depends(require_session),
) -> BusinessFormCreated:
    """Store a business form for the current user. Duplicate business names return 400."""
    store: FormStore = request.app.state.form_store
    saved = await asyncio.to_thread(store.create, body.to_domain(session.user_id))
    return BusinessFormCreated(form=BusinessFormResponse.from_domain(saved))


@router.get("/userData", response_model=BusinessFormResponse)
async def latest_form(
    request: Request,
    session: SessionClaims = Depends(require_session),
) -> BusinessFormResponse:
    store: FormStore = request.app.state.form_store
    form = await asyncio.to_thread(store.latest_for_owner, session.user_id)
    if form is None:
        raise NotFound("No business form submitted yet.")
    return BusinessFormResponse.from_domain(form)


@router.get("/forms", response_model=list[BusinessFormResponse])
async def list_forms(
    request: Request,
    session: SessionClaims = Depends(require_session),
) -> list[BusinessFormResponse]:
    store: FormStore = request.app.state.form_store
    forms = await asyncio.to_thread(store.list_for_owner, session.user_id)
    return [BusinessFormResponse.from_domain(f) for f in forms]
