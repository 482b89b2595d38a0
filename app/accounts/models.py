# app/accounts/models.py
"""
Pydantic models for the auth service.

Records (2):
1. Account — registered user with bcrypt password hash
2. OneTimeCode — pending verification code for an email

Schemas:
- Request inputs for each endpoint (camelCase aliases on the wire)
- Response payloads ({status, message, ...})

Design Decisions:
- Pydantic v2 syntax (ConfigDict, field aliases)
- Input fields are all optional strings; services decide what is missing
  so that every endpoint can report its own message
- Email normalized to stripped lower-case before any lookup

Privacy Rails:
- Passwords stored only as bcrypt hashes
- OTP stored as SHA-256 hash (never plaintext)
- Response schemas never include password_hash or refresh_token
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.accounts.errors import ValidationError, WeakSecret

# ============================================================
# Constants
# ============================================================

# OTP settings
OTP_LENGTH = 6
OTP_TTL_MINUTES = 10

# Password policy: non-empty and at least this many characters
PASSWORD_MIN_LENGTH = 6


# ============================================================
# Field Helpers
# ============================================================

def normalize_email(email: str | None) -> str:
    """
    Normalize email for use as a store key.

    Examples:
        normalize_email("  Alice@X.com ") → "alice@x.com"
        normalize_email(None) → ""
    """
    if not email or not isinstance(email, str):
        return ""
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    """Syntax-only email check (no DNS lookups)."""
    if not email:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def require_valid_email(email: str) -> str:
    """
    Validate and normalize an email address.

    Raises:
        ValidationError: If the address is malformed.
    """
    normalized = normalize_email(email)
    if not is_valid_email(normalized):
        raise ValidationError("Invalid email format")
    return normalized


def check_password_strength(password: str | None, message: str | None = None) -> str:
    """
    Enforce the password policy: non-empty and at least 6 characters.

    This is the only rule. Do not add composition rules here.

    Raises:
        WeakSecret: If the password fails the policy.
    """
    if not password or len(password) < PASSWORD_MIN_LENGTH:
        raise WeakSecret(message)
    return password


# ============================================================
# Account
# ============================================================

class Account(BaseModel):
    """Registered account, keyed by normalized email."""

    id: str = Field(..., description="Account UUID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Normalized email (unique)")
    password_hash: str = Field(..., description="bcrypt hash, never plaintext")
    created_at: datetime = Field(..., description="Registration timestamp (UTC)")
    refresh_token: Optional[str] = Field(
        default=None,
        description="Raw value of the current refresh token",
    )

    def to_summary(self) -> "AccountSummary":
        return AccountSummary(
            id=self.id,
            name=self.name,
            email=self.email,
            created_at=self.created_at.isoformat(),
        )

    def to_brief(self) -> "AccountBrief":
        return AccountBrief(id=self.id, name=self.name, email=self.email)


# ============================================================
# OneTimeCode
# ============================================================

class OneTimeCode(BaseModel):
    """
    Pending verification code for an email.

    Security:
    - Code stored as SHA-256 hash (never plaintext)
    - TTL: 10 minutes
    - Single-use: deleted after successful verification
    - Kept on mismatch so the user can retry until expiry
    """

    email: str = Field(..., description="Owning account email")
    code_hash: str = Field(..., description="SHA-256 hash of the 6-digit code")
    expires_at: datetime = Field(..., description="Expiry timestamp (created_at + 10min)")
    created_at: datetime = Field(..., description="Issue timestamp")

    def is_expired(self, now: datetime | None = None) -> bool:
        """Expired strictly after expires_at."""
        now = now or datetime.now(timezone.utc)
        return now > self.expires_at

    @staticmethod
    def compute_expiry(created_at: datetime | None = None) -> datetime:
        """Compute expiry timestamp (created_at + 10 minutes)."""
        base = created_at or datetime.now(timezone.utc)
        return base + timedelta(minutes=OTP_TTL_MINUTES)


# ============================================================
# Request Schemas
# ============================================================

class _Input(BaseModel):
    # JSON clients may send the OTP as a number
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    @field_validator("*")
    @classmethod
    def check_utf8_encodable(cls, value):
        # JSON escapes can carry lone surrogates, which cannot be hashed
        if isinstance(value, str):
            try:
                value.encode("utf-8")
            except UnicodeEncodeError:
                raise ValueError("text is not valid UTF-8")
        return value


class RegisterInput(_Input):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    # bool from JSON, "true"/"false" from forms
    is_agreed: Any = Field(default=None, alias="isAgreed")


class LoginInput(_Input):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshInput(_Input):
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


class RequestOTPInput(_Input):
    email: Optional[str] = None


class VerifyOTPInput(_Input):
    email: Optional[str] = None
    otp: Optional[str] = None


class ChangePasswordInput(_Input):
    old_password: Optional[str] = Field(default=None, alias="oldPassword")
    new_password: Optional[str] = Field(default=None, alias="newPassword")


class ResetPasswordInput(_Input):
    email: Optional[str] = None
    otp: Optional[str] = None
    new_password: Optional[str] = Field(default=None, alias="newPassword")


# ============================================================
# Response Schemas
# ============================================================

class _Output(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AccountSummary(_Output):
    """Public-safe account view (no secrets)."""

    id: str
    name: str
    email: str
    created_at: str = Field(..., alias="createdAt")


class AccountBrief(_Output):
    id: str
    name: str
    email: str


class StatusResponse(_Output):
    status: bool = True
    message: str


class AccountResponse(StatusResponse):
    data: AccountSummary


class LoginResponse(StatusResponse):
    access_token: str = Field(..., alias="accessToken")
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
    user: AccountBrief


class RefreshResponse(StatusResponse):
    access_token: str = Field(..., alias="accessToken")
