# app/config.py
"""
Environment configuration for the DriverMate auth service.

All settings are read from the environment at call time, so tests can
patch os.environ without reloading modules.

Environment Variables Required:
- ACCESS_SECRET: Signing secret for access tokens (32+ chars recommended)
- REFRESH_SECRET: Signing secret for refresh tokens (when refresh tokens are on)
- RESEND_API_KEY: Resend API key (when OTP_PROVIDER=resend)

Options:
- REFRESH_TOKENS_ENABLED: Issue refresh tokens on login (default: on)
- OTP_PROVIDER: OTP delivery channel, "stub" or "resend" (default: stub)
- OTP_FROM_EMAIL: Sender address for OTP emails
- ACCESS_TOKEN_EXPIRY_MINUTES: Access token lifetime (default: 15)
- REFRESH_TOKEN_EXPIRY_DAYS: Refresh token lifetime (default: 7)
- BCRYPT_ROUNDS: bcrypt cost factor (default: 10)
- EMAIL_TIMEOUT_SECONDS: HTTP timeout for email delivery (default: 10)
- ALLOWED_ORIGINS: Comma-separated CORS origins (default: *)
- LOG_LEVEL: Root log level (default: INFO)

There are no fallback secrets. validate_config() is called on startup and
refuses to boot when a required value is missing.
"""

from __future__ import annotations

import os
import logging
from enum import Enum
from typing import List

log = logging.getLogger("drivermate.config")

# ============================================================
# Defaults
# ============================================================

DEFAULT_ACCESS_TOKEN_MINUTES = 15
DEFAULT_REFRESH_TOKEN_DAYS = 7
DEFAULT_BCRYPT_ROUNDS = 10
DEFAULT_EMAIL_TIMEOUT_SECONDS = 10.0
DEFAULT_OTP_FROM_EMAIL = "DriverMate <onboarding@resend.dev>"
MIN_SECRET_LENGTH = 32


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


class DeliveryChannel(str, Enum):
    """How one-time codes reach the user."""

    STUB = "stub"
    RESEND = "resend"


# ============================================================
# Helpers
# ============================================================

def _flag_on(name: str, default: str = "off") -> bool:
    """Check if a feature flag is enabled."""
    val = os.getenv(name, default).lower()
    return val in ("on", "true", "1", "yes")


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        log.warning("%s is not an integer, using %d", name, default)
        return default


def _require(name: str) -> str:
    """Return a required setting or raise ConfigError."""
    value = os.getenv(name, "").strip()
    if not value:
        raise ConfigError(f"{name} is not set")
    return value


# ============================================================
# Feature Flags
# ============================================================

def is_refresh_tokens_enabled() -> bool:
    """Check if login issues refresh tokens (and /refresh-token is served)."""
    return _flag_on("REFRESH_TOKENS_ENABLED", default="on")


def get_otp_delivery_channel() -> DeliveryChannel:
    """
    Get the OTP delivery channel from OTP_PROVIDER.

    Unknown values fall back to the stub with a warning.
    """
    provider = os.getenv("OTP_PROVIDER", DeliveryChannel.STUB.value).lower().strip()
    try:
        return DeliveryChannel(provider)
    except ValueError:
        log.warning("Unknown OTP_PROVIDER '%s', falling back to stub", provider)
        return DeliveryChannel.STUB


# ============================================================
# Secrets
# ============================================================

def get_access_secret() -> str:
    return _require("ACCESS_SECRET")


def get_refresh_secret() -> str:
    return _require("REFRESH_SECRET")


def get_resend_api_key() -> str:
    return _require("RESEND_API_KEY")


# ============================================================
# Tunables
# ============================================================

def get_access_token_minutes() -> int:
    return _int_env("ACCESS_TOKEN_EXPIRY_MINUTES", DEFAULT_ACCESS_TOKEN_MINUTES)


def get_refresh_token_days() -> int:
    return _int_env("REFRESH_TOKEN_EXPIRY_DAYS", DEFAULT_REFRESH_TOKEN_DAYS)


def get_bcrypt_rounds() -> int:
    """bcrypt cost factor, clamped to the range bcrypt accepts (4-31)."""
    return min(31, max(4, _int_env("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS)))


def get_email_timeout_seconds() -> float:
    try:
        return float(os.getenv("EMAIL_TIMEOUT_SECONDS", str(DEFAULT_EMAIL_TIMEOUT_SECONDS)))
    except ValueError:
        return DEFAULT_EMAIL_TIMEOUT_SECONDS


def get_otp_from_email() -> str:
    return os.getenv("OTP_FROM_EMAIL", DEFAULT_OTP_FROM_EMAIL).strip() or DEFAULT_OTP_FROM_EMAIL


def get_allowed_origins() -> List[str]:
    raw = os.getenv("ALLOWED_ORIGINS", "*")
    return [o.strip() for o in raw.split(",") if o.strip()]


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


# ============================================================
# Startup Validation
# ============================================================

def validate_config() -> None:
    """
    Fail fast on missing required configuration.

    Raises:
        ConfigError: Listing every missing variable.
    """
    required = ["ACCESS_SECRET"]
    if is_refresh_tokens_enabled():
        required.append("REFRESH_SECRET")
    if get_otp_delivery_channel() is DeliveryChannel.RESEND:
        required.append("RESEND_API_KEY")

    missing = [name for name in required if not os.getenv(name, "").strip()]
    if missing:
        raise ConfigError("Missing required configuration: " + ", ".join(missing))

    for name in ("ACCESS_SECRET", "REFRESH_SECRET"):
        value = os.getenv(name, "").strip()
        if value and len(value) < MIN_SECRET_LENGTH:
            log.warning("%s should be at least %d characters", name, MIN_SECRET_LENGTH)

    log.info(
        "Configuration loaded (refresh_tokens=%s, otp_provider=%s)",
        is_refresh_tokens_enabled(),
        get_otp_delivery_channel().value,
    )
