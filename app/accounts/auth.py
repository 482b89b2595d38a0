# app/accounts/auth.py
"""
Authentication module.

This module provides:
- Password hashing and verification (bcrypt, fresh salt per hash)
- JWT access / refresh token creation and verification (PyJWT)
- Account registration and login
- Access token renewal from a stored refresh token
- Password change (old password) and reset (one-time code)
- FastAPI dependency that authorizes bearer access tokens

Token Payload:
- user_id: Account UUID
- email: Account email
- exp: Expiry timestamp
- iat: Issued at timestamp

Access tokens and refresh tokens are signed with different secrets
(ACCESS_SECRET, REFRESH_SECRET). A refresh token is only honoured when it
both verifies and equals the value stored on the account.
"""

from __future__ import annotations

import uuid
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import bcrypt
import jwt
from fastapi import Header

from app import config
from app.db import Database
from app.accounts.errors import (
    Conflict,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    Unauthorized,
    ValidationError,
)
from app.accounts.models import (
    Account,
    check_password_strength,
    normalize_email,
    require_valid_email,
)
from app.accounts.otp import OTPManager
from app.privacy_utils import hash_user_id, mask_email

log = logging.getLogger("drivermate.auth")

JWT_ALGORITHM = "HS256"

# bcrypt only reads the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


# ============================================================
# Password Hashing
# ============================================================

def _password_bytes(password: str) -> bytes:
    try:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    except UnicodeEncodeError:
        raise ValidationError("Invalid request body")


def hash_password(password: str) -> str:
    """
    Hash password with bcrypt.

    Every call generates a new salt, so hashing the same password twice
    gives different results.
    """
    salt = bcrypt.gensalt(rounds=config.get_bcrypt_rounds())
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check password against a stored bcrypt hash."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        log.warning("Stored password hash is malformed")
        return False


# ============================================================
# Token Creation
# ============================================================

def _encode_token(account: Account, secret: str, lifetime: timedelta) -> Tuple[str, datetime]:
    now = datetime.now(timezone.utc)
    expires_at = now + lifetime
    payload = {
        "user_id": account.id,
        "email": account.email,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    token = jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)
    return token, expires_at


def create_access_token(account: Account) -> Tuple[str, datetime]:
    """
    Create a short-lived access token.

    Returns:
        Tuple of (token, expires_at).

    Raises:
        ConfigError: If ACCESS_SECRET is not configured.
    """
    lifetime = timedelta(minutes=config.get_access_token_minutes())
    return _encode_token(account, config.get_access_secret(), lifetime)


def create_refresh_token(account: Account) -> Tuple[str, datetime]:
    """
    Create a long-lived refresh token.

    Raises:
        ConfigError: If REFRESH_SECRET is not configured.
    """
    lifetime = timedelta(days=config.get_refresh_token_days())
    return _encode_token(account, config.get_refresh_secret(), lifetime)


def verify_token(token: str, secret: str) -> Optional[dict]:
    """
    Verify and decode a JWT.

    Returns:
        Decoded payload dict with user_id, email, iat, exp.
        None if token is invalid or expired.
    """
    if not token:
        return None
    try:
        return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        log.info("Token expired")
        return None
    except jwt.InvalidTokenError as e:
        log.warning("Invalid token: %s", str(e)[:50])
        return None


def verify_access_token(token: str) -> Optional[dict]:
    return verify_token(token, config.get_access_secret())


def verify_refresh_token(token: str) -> Optional[dict]:
    return verify_token(token, config.get_refresh_secret())


# ============================================================
# Account Operations
# ============================================================

def get_account_by_email(db: Database, email: str) -> Optional[Account]:
    """Get account by email (case-insensitive)."""
    return db.accounts.get(normalize_email(email))


def _is_agreed(value) -> bool:
    return value is True or value == "true"


def register_account(
    db: Database,
    name: str | None,
    email: str | None,
    password: str | None,
    is_agreed=None,
) -> Account:
    """
    Create a new account.

    Raises:
        ValidationError: Missing fields, bad email, terms not accepted.
        WeakSecret: Password fails the policy.
        Conflict: Email already registered.
    """
    if not name or not name.strip() or not email or not password:
        raise ValidationError("Name, email, and password are required")

    email = require_valid_email(email)
    check_password_strength(password)

    if not _is_agreed(is_agreed):
        raise ValidationError("You must accept terms and conditions")

    if db.accounts.get(email) is not None:
        log.info("Registration conflict for %s", mask_email(email))
        raise Conflict()

    account = Account(
        id=str(uuid.uuid4()),
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        created_at=datetime.now(timezone.utc),
    )
    db.accounts.put(email, account)

    log.info("Account created: %s (user %s)", mask_email(email), hash_user_id(account.id))
    return account


def authenticate(
    db: Database,
    email: str | None,
    password: str | None,
) -> Tuple[Account, str, Optional[str]]:
    """
    Check credentials and issue tokens.

    Returns:
        Tuple of (account, access_token, refresh_token). refresh_token is
        None when refresh tokens are disabled.

    Raises:
        ValidationError: Missing email or password.
        InvalidCredentials: Unknown email or wrong password (same error).
    """
    if not email or not password:
        raise ValidationError("Email and password are required")

    account = get_account_by_email(db, email)
    if account is None or not verify_password(password, account.password_hash):
        log.info("Login failed for %s", mask_email(normalize_email(email)))
        raise InvalidCredentials()

    access_token, _ = create_access_token(account)

    refresh_token = None
    if config.is_refresh_tokens_enabled():
        refresh_token, _ = create_refresh_token(account)
        account.refresh_token = refresh_token
        db.accounts.put(account.email, account)

    log.info("Login for %s (user %s)", mask_email(account.email), hash_user_id(account.id))
    return account, access_token, refresh_token


def renew_access_token(db: Database, refresh_token: str | None) -> str:
    """
    Exchange a stored refresh token for a new access token.

    The refresh token is not rotated.

    Raises:
        ValidationError: Missing token.
        InvalidToken: Token not stored on any account, or fails verification.
    """
    if not refresh_token:
        raise ValidationError("Refresh token is required")

    account = next(
        (a for a in db.accounts.values() if a.refresh_token and a.refresh_token == refresh_token),
        None,
    )
    if account is None:
        raise InvalidToken("Invalid refresh token")

    if verify_refresh_token(refresh_token) is None:
        raise InvalidToken("Refresh token expired or invalid")

    access_token, _ = create_access_token(account)
    log.info("Access token renewed for user %s", hash_user_id(account.id))
    return access_token


# ============================================================
# Credential Mutation
# ============================================================

def change_password(
    db: Database,
    email: str,
    old_password: str | None,
    new_password: str | None,
) -> Account:
    """
    Replace the password after confirming the current one.

    The caller must already be authorized as `email`.

    Raises:
        ValidationError: Missing fields.
        WeakSecret: New password fails the policy.
        NotFound: Account no longer exists.
        InvalidCredentials: Old password is wrong (rendered as 400).
    """
    if not old_password or not new_password:
        raise ValidationError("Old password and new password are required")

    check_password_strength(new_password, "New password must be at least 6 characters")

    account = get_account_by_email(db, email)
    if account is None:
        raise NotFound()

    if not verify_password(old_password, account.password_hash):
        log.info("Password change rejected for user %s", hash_user_id(account.id))
        raise InvalidCredentials("Current password is incorrect", status_code=400)

    account.password_hash = hash_password(new_password)
    db.accounts.put(account.email, account)

    log.info("Password changed for user %s", hash_user_id(account.id))
    return account


def reset_password(
    db: Database,
    otp_manager: OTPManager,
    email: str | None,
    otp: str | None,
    new_password: str | None,
) -> Account:
    """
    Replace the password after consuming a one-time code.

    The code is the only gate: knowledge of the old password is not needed.

    Raises:
        ValidationError: Missing fields.
        WeakSecret: New password fails the policy.
        NotFound: No account for this email.
        NoCodeIssued / CodeExpired / CodeMismatch: From OTPManager.consume_code.
    """
    if not email or not otp or not new_password:
        raise ValidationError("Email, OTP, and new password are required")

    check_password_strength(new_password)

    account = get_account_by_email(db, email)
    if account is None:
        raise NotFound()

    # Hash first so a failure here leaves the code usable
    new_hash = hash_password(new_password)
    otp_manager.consume_code(account.email, otp)

    account.password_hash = new_hash
    db.accounts.put(account.email, account)

    log.info("Password reset for user %s", hash_user_id(account.id))
    return account


# ============================================================
# Authorization
# ============================================================

def authorize(authorization: str | None) -> dict:
    """
    Validate an Authorization header and return the token claims.

    Raises:
        Unauthorized: Header missing, malformed, or token invalid/expired.
    """
    if not authorization:
        raise Unauthorized("Access token required")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthorized("Invalid token format")

    claims = verify_access_token(parts[1])
    if not claims or not claims.get("email"):
        raise Unauthorized("Invalid or expired token")
    return claims


async def get_current_claims(authorization: Optional[str] = Header(None)) -> dict:
    """
    FastAPI dependency for routes that require an access token.

    Usage:
        @router.get("/protected")
        async def protected(claims: dict = Depends(get_current_claims)):
            ...
    """
    return authorize(authorization)
