# tests/conftest.py
"""
Pytest configuration and shared fixtures.

- Test environment (secrets, cheap bcrypt rounds, stub OTP delivery)
- Isolated in-memory Database per test
- Recording OTP service that captures issued codes
- TestClient wired to both through dependency_overrides
"""

import os
import sys
from pathlib import Path
from datetime import datetime, timedelta, timezone

import pytest

# Settings are read at call time; set them before the app is imported
os.environ.setdefault("ACCESS_SECRET", "test-access-secret-0123456789abcdef0123")
os.environ.setdefault("REFRESH_SECRET", "test-refresh-secret-0123456789abcdef012")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("OTP_PROVIDER", "stub")

# Make "from app.main import app" work when tests run from CI/workdir
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from fastapi.testclient import TestClient  # noqa: E402

from app.main import app  # noqa: E402
from app.db import Database, get_db  # noqa: E402
from app.accounts.otp import OTPManager, OTPService, get_otp_service  # noqa: E402


# ============================================================
# Test Doubles
# ============================================================

class RecordingOTPService(OTPService):
    """OTP service that keeps every code it is asked to send."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_otp(self, email, otp):
        self.sent.append((email, otp))
        return not self.fail

    def send_email(self, to, subject, html):
        return not self.fail

    def get_provider_name(self):
        return "recording"

    def last_code(self, email=None):
        for to, otp in reversed(self.sent):
            if email is None or to == email:
                return otp
        return None


class FakeClock:
    """Settable clock for OTP expiry tests."""

    def __init__(self, now=None):
        self.now = now or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


# ============================================================
# Storage / Services
# ============================================================

@pytest.fixture
def db():
    """Fresh in-memory Database."""
    return Database()


@pytest.fixture
def otp_service():
    return RecordingOTPService()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def otp_manager(db, otp_service, clock):
    return OTPManager(db, otp_service, clock=clock)


# ============================================================
# Test Client
# ============================================================

@pytest.fixture
def client(db, otp_service):
    """TestClient with an isolated Database and recording OTP service."""
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_otp_service] = lambda: otp_service
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register an account through the API and return its credentials."""

    def _register(email="driver@example.com", password="secret123", name="Test Driver"):
        r = client.post(
            "/register",
            json={"name": name, "email": email, "password": password, "isAgreed": True},
        )
        assert r.status_code == 201, r.text
        return {"email": email, "password": password, "name": name}

    return _register


@pytest.fixture
def login(client):
    """Log in through the API and return the response body."""

    def _login(email="driver@example.com", password="secret123"):
        r = client.post("/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return r.json()

    return _login


# ============================================================
# Pytest Configuration
# ============================================================

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (full HTTP flow)"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )
