# app/accounts/errors.py
"""Error kinds raised by the account services.

Every error carries a user-safe message and the HTTP status it is
rendered with. app/main.py turns them into {"status": false, "message": ...}.
"""

from __future__ import annotations

__all__ = [
    "AuthError",
    "ValidationError",
    "WeakSecret",
    "NoCodeIssued",
    "CodeExpired",
    "CodeMismatch",
    "Conflict",
    "InvalidCredentials",
    "Unauthorized",
    "InvalidToken",
    "NotFound",
    "DeliveryFailed",
    "InternalError",
]


class AuthError(Exception):
    """Base class for all account service errors."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AuthError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Invalid request"


class WeakSecret(ValidationError):
    """Password fails the strength policy (non-empty, 6+ characters)."""

    default_message = "Password must be at least 6 characters"


class NoCodeIssued(ValidationError):
    default_message = "No OTP found. Please request a new one."


class CodeExpired(ValidationError):
    """The stored code was past its expiry and has been removed."""

    default_message = "OTP has expired. Please request a new one."


class CodeMismatch(ValidationError):
    """Wrong code submitted. The stored code is kept for retry."""

    default_message = "Invalid OTP code"


class Conflict(AuthError):
    status_code = 409
    default_message = "Email already registered"


class InvalidCredentials(AuthError):
    """Unknown account or wrong password. Same error for both."""

    status_code = 401
    default_message = "Invalid email or password"


class Unauthorized(AuthError):
    status_code = 401
    default_message = "Invalid or expired token"


class InvalidToken(AuthError):
    status_code = 403
    default_message = "Invalid refresh token"


class NotFound(AuthError):
    status_code = 404
    default_message = "User not found"


class DeliveryFailed(AuthError):
    status_code = 500
    default_message = "Failed to send OTP email. Please try again."


class InternalError(AuthError):
    pass
