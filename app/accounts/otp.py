# app/accounts/otp.py
"""
OTP Service for email verification and password reset.

This module provides:
- Abstract delivery interface (OTPService base class)
- Stub implementation (logs the code, for development)
- Resend implementation (transactional email over HTTPS)
- OTP generation, hashing, and verification utilities
- OTPManager: issue and consume codes against the OTP store

Lifecycle:
- OTP is 6 digits (000000-999999), uniformly random
- OTP hashed with SHA-256 before storage (never store plaintext)
- TTL: 10 minutes
- One live code per email: a new request replaces the old one
- Single-use: deleted after successful verification
- Deleted when found expired
- Kept on mismatch, so a typo can be retried until expiry

Delivery:
- OTP_PROVIDER selects the channel ("stub" or "resend")
- HTTP delivery has an explicit timeout (EMAIL_TIMEOUT_SECONDS) and no retry
"""

from __future__ import annotations

import hmac
import secrets
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from hashlib import sha256
from typing import Callable, Optional

import httpx
from fastapi import Depends

from app import config
from app.db import Database, get_db
from app.accounts.errors import (
    CodeExpired,
    CodeMismatch,
    DeliveryFailed,
    NoCodeIssued,
    NotFound,
    ValidationError,
)
from app.accounts.models import (
    OTP_LENGTH,
    OTP_TTL_MINUTES,
    OneTimeCode,
    normalize_email,
    require_valid_email,
)
from app.privacy_utils import mask_email

log = logging.getLogger("drivermate.otp")

OTP_EMAIL_SUBJECT = "Your OTP Code - DriverMate"
RESEND_API_URL = "https://api.resend.com/emails"

# ============================================================
# OTP Utilities
# ============================================================

def generate_otp() -> str:
    """
    Generate a secure 6-digit OTP.

    Returns:
        String of 6 digits (e.g., "123456", "000001").

    Security:
        Uses secrets module for cryptographically secure random numbers.
    """
    return f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"


def hash_otp(otp: str) -> str:
    """Hash OTP with SHA-256 (hex digest)."""
    return sha256(otp.encode("utf-8")).hexdigest()


def verify_otp_hash(otp: str, otp_hash: str) -> bool:
    """
    Verify OTP against stored hash (constant-time comparison).

    Security:
        Uses constant-time comparison to prevent timing attacks.
    """
    computed = hash_otp(otp)
    return hmac.compare_digest(computed, otp_hash)


def render_otp_email(otp: str) -> str:
    """HTML body for the OTP email."""
    return f"""
        <!DOCTYPE html>
        <html>
        <head>
          <meta charset="utf-8">
          <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: Arial, sans-serif; background-color: #f4f4f4; padding: 20px;">
          <div style="max-width: 600px; margin: 0 auto; background-color: white; border-radius: 8px; padding: 30px;">
            <h1 style="color: #333; text-align: center;">DriverMate</h1>
            <h2 style="color: #666; text-align: center;">Your OTP Code</h2>
            <div style="background-color: #f8f9fa; border-radius: 8px; padding: 20px; text-align: center; margin: 20px 0;">
              <h1 style="font-size: 36px; font-weight: bold; color: #007bff; margin: 0; letter-spacing: 5px;">{otp}</h1>
            </div>
            <p style="color: #666; text-align: center; margin-top: 20px;">This code will expire in {OTP_TTL_MINUTES} minutes.</p>
            <p style="color: #999; text-align: center; font-size: 12px; margin-top: 30px;">If you didn't request this code, please ignore this email.</p>
          </div>
        </body>
        </html>
    """


# ============================================================
# Abstract OTP Service
# ============================================================

class OTPService(ABC):
    """
    Abstract base class for OTP delivery.

    Implementations:
    - StubOTPService: Logs to console (development)
    - ResendOTPService: Sends via Resend API (production)
    """

    @abstractmethod
    def send_email(self, to: str, subject: str, html: str) -> bool:
        """
        Send a transactional email.

        Returns:
            True if accepted by the provider, False otherwise.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return provider name for logging."""

    def send_otp(self, email: str, otp: str) -> bool:
        """Render the OTP email and send it."""
        return self.send_email(email, OTP_EMAIL_SUBJECT, render_otp_email(otp))


# ============================================================
# Stub Implementation (Development)
# ============================================================

class StubOTPService(OTPService):
    """
    Stub OTP service that logs to console.

    Use in development. Never use in production.
    """

    def send_otp(self, email: str, otp: str) -> bool:
        log.info(
            "[STUB OTP] OTP for %s: %s (expires in %d minutes)",
            mask_email(email),
            otp,
            OTP_TTL_MINUTES,
        )
        return super().send_otp(email, otp)

    def send_email(self, to: str, subject: str, html: str) -> bool:
        log.info("[STUB EMAIL] Would send '%s' to %s", subject, mask_email(to))
        return True

    def get_provider_name(self) -> str:
        return "stub"


# ============================================================
# Resend Implementation (Production)
# ============================================================

class ResendOTPService(OTPService):
    """
    OTP service using the Resend API.

    Requires:
    - RESEND_API_KEY: Resend API key
    - OTP_FROM_EMAIL: Sender (optional, defaults to the Resend onboarding sender)
    """

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        timeout: float | None = None,
    ):
        self.api_key = api_key or config.get_resend_api_key()
        self.from_email = from_email or config.get_otp_from_email()
        self.timeout = timeout if timeout is not None else config.get_email_timeout_seconds()

    def send_email(self, to: str, subject: str, html: str) -> bool:
        try:
            response = httpx.post(
                RESEND_API_URL,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "from": self.from_email,
                    "to": [to],
                    "subject": subject,
                    "html": html,
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            log.error("Failed to send email via Resend: %s", str(e)[:100])
            return False

        if response.status_code == 200:
            log.info("Email sent via Resend to %s", mask_email(to))
            return True

        log.error("Resend API error: %s %s", response.status_code, response.text[:100])
        return False

    def get_provider_name(self) -> str:
        return "resend"


# ============================================================
# Service Factory
# ============================================================

def get_otp_service() -> OTPService:
    """
    Get OTP service based on the OTP_PROVIDER environment variable.

    Providers:
    - "stub" (default): Logs to console
    - "resend": Sends via Resend API
    """
    if config.get_otp_delivery_channel() is config.DeliveryChannel.RESEND:
        return ResendOTPService()
    return StubOTPService()


# ============================================================
# OTP Manager
# ============================================================

class OTPManager:
    """
    Manages the OTP lifecycle: issue and consume.

    Responsibilities:
    - Confirm the account exists before issuing
    - Store one hashed code per email (last write wins)
    - Consume with delete-on-success-or-expiry, retain-on-mismatch
    """

    def __init__(
        self,
        db: Database,
        service: OTPService | None = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize OTP manager.

        Args:
            db: Database holding the accounts and otp_codes stores.
            service: Delivery service. If None, uses get_otp_service().
            clock: Returns the current UTC time. Defaults to datetime.now(timezone.utc).
        """
        self.db = db
        self.service = service or get_otp_service()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        return self._clock()

    def issue_code(self, email: str | None) -> OneTimeCode:
        """
        Issue a fresh code for an existing account and deliver it.

        Returns:
            The stored OneTimeCode record.

        Raises:
            ValidationError: Missing or malformed email.
            NotFound: No account for this email.
            DeliveryFailed: The delivery service could not send. The code
                stays stored.
        """
        if not email or not email.strip():
            raise ValidationError("Email is required")
        email = require_valid_email(email)

        if self.db.accounts.get(email) is None:
            log.info("OTP requested for unknown account %s", mask_email(email))
            raise NotFound("No account found with this email")

        otp = generate_otp()
        now = self.now()
        record = OneTimeCode(
            email=email,
            code_hash=hash_otp(otp),
            expires_at=OneTimeCode.compute_expiry(now),
            created_at=now,
        )
        # Replaces any earlier unconsumed code for this email
        self.db.otp_codes.put(email, record)

        if not self.service.send_otp(email, otp):
            log.warning("OTP delivery failed for %s", mask_email(email))
            raise DeliveryFailed()

        log.info("OTP issued for %s via %s", mask_email(email), self.service.get_provider_name())
        return record

    def consume_code(self, email: str | None, otp: str | None) -> None:
        """
        Consume the code for email.

        Raises:
            NoCodeIssued: No live code for this email.
            CodeExpired: Code is past expiry (record removed).
            CodeMismatch: Wrong code (record kept).
        """
        email = normalize_email(email)
        otp = (otp or "").strip()

        record: Optional[OneTimeCode] = self.db.otp_codes.get(email)
        if record is None:
            log.info("No OTP found for %s", mask_email(email))
            raise NoCodeIssued()

        if record.is_expired(self.now()):
            self.db.otp_codes.delete(email)
            log.info("OTP expired for %s", mask_email(email))
            raise CodeExpired()

        if not verify_otp_hash(otp, record.code_hash):
            log.info("OTP mismatch for %s", mask_email(email))
            raise CodeMismatch()

        self.db.otp_codes.delete(email)
        log.info("OTP verified for %s", mask_email(email))


# ============================================================
# FastAPI Dependency
# ============================================================

def get_otp_manager(
    db: Database = Depends(get_db),
    service: OTPService = Depends(get_otp_service),
) -> OTPManager:
    """Build an OTPManager for the current request."""
    return OTPManager(db, service)
