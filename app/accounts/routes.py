# app/accounts/routes.py
"""
Account routes (bearer access token required).

Endpoints:
- GET /profile — Current account summary
- POST /change-password — Replace password after confirming the old one

Security:
- Authorization: Bearer <accessToken> on every request
- Response headers: Cache-Control: no-store on /profile
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from app.db import Database, get_db
from app.accounts import auth
from app.accounts.auth import get_current_claims
from app.accounts.auth_routes import parse_input
from app.accounts.errors import NotFound
from app.accounts.models import AccountResponse, ChangePasswordInput, StatusResponse


# ============================================================
# Router Setup
# ============================================================

router = APIRouter(tags=["Account"])


# ============================================================
# Endpoints
# ============================================================

@router.get(
    "/profile",
    response_model=AccountResponse,
    summary="Get profile",
    responses={
        401: {"description": "Missing or invalid access token"},
        404: {"description": "Account no longer exists"},
    },
)
async def get_profile(
    response: Response,
    claims: dict = Depends(get_current_claims),
    db: Database = Depends(get_db),
) -> AccountResponse:
    account = auth.get_account_by_email(db, claims["email"])
    if account is None:
        raise NotFound()

    response.headers["Cache-Control"] = "no-store"
    return AccountResponse(message="Profile fetched successfully", data=account.to_summary())


@router.post(
    "/change-password",
    response_model=StatusResponse,
    summary="Change password",
    responses={
        400: {"description": "Missing fields, weak password, or wrong current password"},
        401: {"description": "Missing or invalid access token"},
        404: {"description": "Account no longer exists"},
    },
)
async def change_password_endpoint(
    request: Request,
    claims: dict = Depends(get_current_claims),
    db: Database = Depends(get_db),
) -> StatusResponse:
    body = await parse_input(request, ChangePasswordInput)
    auth.change_password(db, claims["email"], body.old_password, body.new_password)
    return StatusResponse(message="Password changed successfully")
