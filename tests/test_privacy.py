# tests/test_privacy.py
"""
Privacy Tests

Tests for:
- Email masking and user ID hashing helpers
- No raw email, password, token or OTP in service logs

Run with: pytest tests/test_privacy.py -v
"""

import logging

import pytest

from app.privacy_utils import hash_user_id, mask_email

EMAIL = "driver@example.com"
PASSWORD = "secret123"


# ============================================================
# Helper Tests
# ============================================================

class TestMaskEmail:

    @pytest.mark.parametrize("email,masked", [
        ("john@example.com", "jo**@example.com"),
        ("ab@example.com", "**@example.com"),
        ("  driver@example.com ", "dr**@example.com"),
        ("invalid", "***"),
        ("", "***"),
        (None, "***"),
    ])
    def test_mask_email(self, email, masked):
        assert mask_email(email) == masked


class TestHashUserId:

    def test_hash_is_short_and_stable(self):
        h = hash_user_id("0b7c6a2e-1111-2222-3333-444455556666")
        assert len(h) == 8
        assert h == hash_user_id("0b7c6a2e-1111-2222-3333-444455556666")
        assert h != "0b7c6a2e"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_is_anon(self, value):
        assert hash_user_id(value) == "anon"


# ============================================================
# Log Hygiene
# ============================================================

@pytest.mark.integration
def test_flows_do_not_log_secrets(client, otp_service, caplog):
    with caplog.at_level(logging.DEBUG):
        client.post("/register", json={"name": "Test Driver", "email": EMAIL, "password": PASSWORD, "isAgreed": True})
        tokens = client.post("/login", json={"email": EMAIL, "password": PASSWORD}).json()
        client.post("/login", json={"email": EMAIL, "password": "wrong-password"})
        client.post("/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        client.post("/request-otp", json={"email": EMAIL})
        code = otp_service.last_code(EMAIL)
        client.post("/verify-otp", json={"email": EMAIL, "otp": "999999" if code != "999999" else "000000"})
        client.post("/reset-password", json={"email": EMAIL, "otp": code, "newPassword": "brandnew1"})

    text = caplog.text
    assert "dr**@example.com" in text
    assert EMAIL not in text
    assert PASSWORD not in text
    assert "brandnew1" not in text
    assert tokens["accessToken"] not in text
    assert tokens["refreshToken"] not in text
    assert f"OTP for dr**@example.com: {code}" not in text
