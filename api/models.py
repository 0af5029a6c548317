"""
API request and response models for Formdesk REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py and
forms/models.py, which own the internal domain representation. Route handlers
map between the two.

Validation happens here, at the boundary, before any domain logic runs. A
failed check becomes a 400 validation_error through api/main.py.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from auth.models import SessionClaims, UserAccount
from auth.passwords import MAX_PASSWORD_BYTES
from forms.models import BusinessForm

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Deliberately loose: one "@", no whitespace, a dot in the domain part.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

MIN_PASSWORD_LENGTH = 6


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
    return value


# ---------------------------------------------------------------------------
# Auth -- requests
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /register."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=3, max_length=255)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    """Request body for POST /login.

    At least one of username or email is required. When both are sent,
    username is the identifier used for the lookup. The password length
    policy is only enforced at registration; a short password here is just
    a wrong one.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    username: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN, max_length=320)
    password: str = Field(min_length=1)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)

    @model_validator(mode="after")
    def require_identifier(self) -> "LoginRequest":
        if not self.username and not self.email:
            raise ValueError("Email or username is required")
        return self

    @property
    def identifier(self) -> str:
        return self.username or self.email or ""


# ---------------------------------------------------------------------------
# Auth -- responses
# ---------------------------------------------------------------------------


class UserPublic(BaseModel):
    """Public fields of an account. Never carries the password hash."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    email: str

    @classmethod
    def from_account(cls, account: UserAccount) -> "UserPublic":
        return cls(id=account.id, username=account.username, email=account.email)


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "User registered successfully"
    user: UserPublic


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "Login successful"
    user: UserPublic


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class SessionInfo(BaseModel):
    """Identity decoded from the session token."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    username: str
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def from_claims(cls, claims: SessionClaims) -> "SessionInfo":
        return cls(
            user_id=claims.user_id,
            username=claims.username,
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
        )


class DashboardResponse(BaseModel):
    """Response for GET /dashboard."""

    model_config = ConfigDict(frozen=True)

    message: str = "Welcome to your dashboard"
    user: SessionInfo


# ---------------------------------------------------------------------------
# Business forms
# ---------------------------------------------------------------------------


class BusinessFormCreate(BaseModel):
    """Request body for POST /business/form."""

    model_config = ConfigDict(str_strip_whitespace=True)

    businessName: str = Field(min_length=3, max_length=255)
    period: str = Field(min_length=3, max_length=100)
    expectedIncome: Decimal = Field(ge=0, max_digits=14, decimal_places=2)
    actualIncome: Decimal = Field(ge=0, max_digits=14, decimal_places=2)
    reason: str = Field(min_length=3, max_length=2000)
    category: str = Field(min_length=3, max_length=100)

    def to_domain(self, owner_id: str) -> BusinessForm:
        return BusinessForm(
            owner_id=owner_id,
            business_name=self.businessName,
            period=self.period,
            expected_income=self.expectedIncome,
            actual_income=self.actualIncome,
            reason=self.reason,
            category=self.category,
        )


class BusinessFormResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    businessName: str
    period: str
    expectedIncome: Decimal
    actualIncome: Decimal
    reason: str
    category: str
    createdAt: datetime

    @classmethod
    def from_domain(cls, form: BusinessForm) -> "BusinessFormResponse":
        return cls(
            id=form.id,
            businessName=form.business_name,
            period=form.period,
            expectedIncome=form.expected_income,
            actualIncome=form.actual_income,
            reason=form.reason,
            category=form.category,
            createdAt=form.created_at,
        )


class BusinessFormCreated(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "Business form submitted successfully"
    form: BusinessFormResponse


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    database: str = "ok"
