"""
api/routes/auth.py -- Registration, login and logout endpoints.

Routes:
  POST /register  -- create an account; 201
  POST /login     -- password login; sets the authToken cookie
  POST /logout    -- clears the cookie; 200

Security:
  AuthService.login() provides timing equalization -- use it, never inline
  a lookup + verify in the route.
  Cache-Control: no-store on login responses.
  The password hash never leaves the service layer; responses carry
  UserPublic only.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import LoginRequest, LoginResponse, MessageResponse, RegisterRequest, RegisterResponse, UserPublic
from auth.service import AuthService
from auth.tokens import clear_auth_cookie, set_auth_cookie

# Auth policy: every route here is public -- they are how a session starts and ends.
router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create an account. Duplicate username or email returns 400 duplicate."""
    service: AuthService = request.app.state.auth_service
    account = await service.register(body.username, body.email, body.password)
    return RegisterResponse(user=UserPublic.from_account(account))


@router.post("/login", response_model=LoginResponse)
async def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username or email plus password; set the session cookie.

    Wrong identifier and wrong password return the same 401
    invalid_credentials so the response does not reveal which one failed.
    """
    service: AuthService = request.app.state.auth_service
    settings = request.app.state.settings
    account, token = await service.login(body.identifier, body.password)

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(user=UserPublic.from_account(account)).model_dump(mode="json"),
    )
    set_auth_cookie(resp, token, max_age=settings.token_expire_seconds, secure=settings.secure_cookies)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout", response_model=MessageResponse)
async def logout() -> JSONResponse:
    """Clear the session cookie. The token itself stays valid until it expires."""
    resp = JSONResponse(content=MessageResponse(message="Logged out.").model_dump())
    clear_auth_cookie(resp)
    return resp
