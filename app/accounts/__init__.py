# app/accounts/__init__.py
"""
DriverMate Accounts Package

This package provides:
- Account registration and password login
- Access / refresh token issuance and renewal
- OTP-based verification and password reset
- Authenticated profile and password change

Feature Flags (controlled in app/config.py):
- REFRESH_TOKENS_ENABLED: refresh tokens on login, /refresh-token
- OTP_PROVIDER: stub or resend delivery

Submodules:
- errors: Error kinds rendered as {status: false, message}
- models: Account / OneTimeCode records and request/response schemas
- otp: OTP generation, delivery, issue/consume lifecycle
- auth: Password hashing, JWT tokens, credential flows
- auth_routes: FastAPI routes for register/login/tokens/OTP/reset
- routes: FastAPI routes for /profile, /change-password
"""

from __future__ import annotations

# Explicit exports for clean imports
__all__ = [
    # Models
    "Account",
    "OneTimeCode",
    "AccountSummary",
    # OTP
    "OTPService",
    "OTPManager",
    "generate_otp",
    "hash_otp",
    "verify_otp_hash",
    "get_otp_service",
    "get_otp_manager",
    # Auth
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "verify_token",
    "register_account",
    "authenticate",
    "renew_access_token",
    "change_password",
    "reset_password",
    "authorize",
    "get_current_claims",
    # Routes
    "auth_router",
    "account_router",
]

# Lazy imports to avoid circular dependencies
def __getattr__(name: str):
    """Lazy import pattern for clean module loading."""

    # Models
    if name in ("Account", "OneTimeCode", "AccountSummary"):
        from . import models
        return getattr(models, name)

    # OTP
    if name in ("OTPService", "OTPManager", "generate_otp", "hash_otp",
                "verify_otp_hash", "get_otp_service", "get_otp_manager"):
        from . import otp
        return getattr(otp, name)

    # Auth
    if name in ("hash_password", "verify_password", "create_access_token",
                "create_refresh_token", "verify_token", "register_account",
                "authenticate", "renew_access_token", "change_password",
                "reset_password", "authorize", "get_current_claims"):
        from . import auth
        return getattr(auth, name)

    # Routes
    if name == "auth_router":
        from .auth_routes import router
        return router

    if name == "account_router":
        from .routes import router
        return router

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
