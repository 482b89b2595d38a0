# app/privacy_utils.py
"""
Privacy utilities for logging.

Functions:
- mask_email(email) — Mask email for logs
- hash_user_id(user_id) — Hash user ID for logs

Usage in logs:
```python
from app.privacy_utils import mask_email, hash_user_id

log.info("Login for %s (user %s)", mask_email(email), hash_user_id(user_id))
```

Privacy Rails:
- Never log raw emails (use mask_email)
- Never log raw user IDs (use hash_user_id)
- Never log passwords, tokens or OTPs
"""

from __future__ import annotations

from hashlib import sha256


# ============================================================
# Email Masking
# ============================================================

def mask_email(email: str) -> str:
    """
    Mask email for logs: john@example.com → jo**@example.com

    Examples:
        mask_email("john@example.com") → "jo**@example.com"
        mask_email("ab@example.com") → "**@example.com"
        mask_email(None) → "***"
        mask_email("invalid") → "***"
    """
    if not email or not isinstance(email, str):
        return "***"

    email = email.strip()

    if "@" not in email:
        return "***"

    local, domain = email.rsplit("@", 1)

    if len(local) <= 2:
        return f"**@{domain}"

    return f"{local[:2]}**@{domain}"


# ============================================================
# User ID Hashing
# ============================================================

def hash_user_id(user_id: str) -> str:
    """
    Hash user ID for logs: full UUID → first 8 chars of SHA-256.

    Examples:
        hash_user_id(None) → "anon"
        hash_user_id("") → "anon"
    """
    if not user_id or not isinstance(user_id, str):
        return "anon"

    user_id = user_id.strip()

    if not user_id:
        return "anon"

    return sha256(user_id.encode("utf-8")).hexdigest()[:8]
