# app/accounts/auth_routes.py
"""
Authentication routes.

Endpoints:
- POST /register — Create an account
- POST /login — Exchange credentials for access (+ refresh) token
- POST /refresh-token — Exchange a refresh token for a new access token
- POST /request-otp — Email a one-time code to an existing account
- POST /verify-otp — Consume a one-time code
- POST /reset-password — Set a new password using a one-time code

Request bodies may be JSON or form data (urlencoded or multipart).
Field names are camelCase on the wire.

Feature Flag:
- REFRESH_TOKENS_ENABLED: /refresh-token answers 404 when off

Security:
- Same 401 for unknown email and wrong password
- OTP hashed before storage (SHA-256), constant-time comparison
- No raw PII in logs
"""

from __future__ import annotations

import logging
from typing import Type, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError
from starlette.concurrency import run_in_threadpool

from app import config
from app.db import Database, get_db
from app.accounts import auth
from app.accounts.errors import ValidationError
from app.accounts.models import (
    AccountResponse,
    LoginInput,
    LoginResponse,
    RefreshInput,
    RefreshResponse,
    RegisterInput,
    RequestOTPInput,
    ResetPasswordInput,
    StatusResponse,
    VerifyOTPInput,
)
from app.accounts.otp import OTPManager, get_otp_manager

log = logging.getLogger("drivermate.auth_routes")

InputT = TypeVar("InputT", bound=BaseModel)

# ============================================================
# Router Setup
# ============================================================

router = APIRouter(tags=["Authentication"])


# ============================================================
# Body Parsing
# ============================================================

async def read_fields(request: Request) -> dict:
    """
    Read request fields from a JSON or form body.

    Unknown content types and non-object JSON give an empty dict, so the
    endpoint reports its own "required" message.
    """
    content_type = request.headers.get("content-type", "").lower()

    if "application/json" in content_type:
        try:
            data = await request.json()
        except ValueError:
            log.info("Malformed JSON body on %s", request.url.path)
            raise ValidationError("Invalid JSON body")
        return data if isinstance(data, dict) else {}

    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        form = await request.form()
        return {k: v for k, v in form.items() if isinstance(v, str)}

    return {}


async def parse_input(request: Request, model: Type[InputT]) -> InputT:
    data = await read_fields(request)
    try:
        return model.model_validate(data)
    except SchemaError:
        raise ValidationError("Invalid request body")


# ============================================================
# Feature Flag Guard
# ============================================================

def check_refresh_enabled():
    """Dependency that hides /refresh-token when refresh tokens are off."""
    if not config.is_refresh_tokens_enabled():
        # Same 404 as an unknown path
        raise HTTPException(status_code=404)


# ============================================================
# Endpoints
# ============================================================

@router.post(
    "/register",
    response_model=AccountResponse,
    status_code=201,
    summary="Register",
    responses={
        400: {"description": "Missing/invalid fields, weak password, terms not accepted"},
        409: {"description": "Email already registered"},
    },
)
async def register_endpoint(request: Request, db: Database = Depends(get_db)) -> AccountResponse:
    body = await parse_input(request, RegisterInput)
    account = auth.register_account(db, body.name, body.email, body.password, body.is_agreed)
    return AccountResponse(message="Registration successful", data=account.to_summary())


@router.post(
    "/login",
    response_model=LoginResponse,
    response_model_exclude_none=True,
    summary="Login",
    responses={
        400: {"description": "Missing fields"},
        401: {"description": "Invalid email or password"},
    },
)
async def login_endpoint(request: Request, db: Database = Depends(get_db)) -> LoginResponse:
    body = await parse_input(request, LoginInput)
    account, access_token, refresh_token = auth.authenticate(db, body.email, body.password)
    return LoginResponse(
        message="Login successful",
        access_token=access_token,
        refresh_token=refresh_token,
        user=account.to_brief(),
    )


@router.post(
    "/refresh-token",
    response_model=RefreshResponse,
    summary="Refresh access token",
    responses={
        400: {"description": "Missing refresh token"},
        403: {"description": "Invalid or expired refresh token"},
        404: {"description": "Refresh tokens disabled"},
    },
)
async def refresh_token_endpoint(
    request: Request,
    db: Database = Depends(get_db),
    _: None = Depends(check_refresh_enabled),
) -> RefreshResponse:
    body = await parse_input(request, RefreshInput)
    access_token = auth.renew_access_token(db, body.refresh_token)
    return RefreshResponse(message="Token refreshed successfully", access_token=access_token)


@router.post(
    "/request-otp",
    response_model=StatusResponse,
    summary="Request OTP",
    responses={
        400: {"description": "Missing or invalid email"},
        404: {"description": "No account for this email"},
        500: {"description": "Email delivery failed"},
    },
)
async def request_otp_endpoint(
    request: Request,
    otp_manager: OTPManager = Depends(get_otp_manager),
) -> StatusResponse:
    """
    Send a 6-digit code to the account's email.

    The code expires in 10 minutes. Requesting again replaces the previous code.
    """
    body = await parse_input(request, RequestOTPInput)
    # Delivery blocks on HTTP; keep it off the event loop
    await run_in_threadpool(otp_manager.issue_code, body.email)
    return StatusResponse(message="OTP sent successfully to your email")


@router.post(
    "/verify-otp",
    response_model=StatusResponse,
    summary="Verify OTP",
    responses={400: {"description": "Missing fields, no code, expired, or mismatch"}},
)
async def verify_otp_endpoint(
    request: Request,
    otp_manager: OTPManager = Depends(get_otp_manager),
) -> StatusResponse:
    """
    Consume a one-time code.

    A wrong code can be retried until expiry; a correct code works once.
    """
    body = await parse_input(request, VerifyOTPInput)
    if not body.email or not body.otp:
        raise ValidationError("Email and OTP are required")
    otp_manager.consume_code(body.email, body.otp)
    return StatusResponse(message="OTP verified successfully")


@router.post(
    "/reset-password",
    response_model=StatusResponse,
    summary="Reset password",
    responses={
        400: {"description": "Missing fields, weak password, or invalid OTP"},
        404: {"description": "No account for this email"},
    },
)
async def reset_password_endpoint(
    request: Request,
    db: Database = Depends(get_db),
    otp_manager: OTPManager = Depends(get_otp_manager),
) -> StatusResponse:
    """
    Set a new password with a one-time code.

    The code is the only proof required: whoever receives the email can
    reset the password.
    """
    body = await parse_input(request, ResetPasswordInput)
    auth.reset_password(db, otp_manager, body.email, body.otp, body.new_password)
    return StatusResponse(message="Password reset successfully")
