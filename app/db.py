# app/db.py
"""
Storage layer for the auth service.

This module provides:
- KeyValueStore interface (get / put / delete / values)
- InMemoryStore, a process-local dict-backed implementation
- Database, the pair of stores the service owns (accounts, otp_codes)
- get_db() dependency for FastAPI routes

Infrastructure Decision:
- Process-local memory only. Data resets on restart.
- Stores are injected, so a persistent backend only needs to implement
  KeyValueStore, and tests get an isolated Database per case.

Keys:
- accounts: normalized email -> Account
- otp_codes: normalized email -> OneTimeCode
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Dict, Iterator, Optional

log = logging.getLogger("drivermate.db")

# ============================================================
# Table Names (Constants)
# ============================================================

TABLE_ACCOUNTS = "accounts"
TABLE_OTP_CODES = "otp_codes"


# ============================================================
# Store Interface
# ============================================================

class KeyValueStore(ABC):
    """Ownership-exclusive mapping from key to record."""

    name: str = "store"

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the record for key, or None."""

    @abstractmethod
    def put(self, key: str, value: Any) -> None:
        """Insert or replace the record for key."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove the record for key. Returns True if something was removed."""

    @abstractmethod
    def values(self) -> Iterator[Any]:
        """Iterate over all records."""

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class InMemoryStore(KeyValueStore):
    """dict-backed store. Last write wins."""

    def __init__(self, name: str = "store"):
        self.name = name
        self._store: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        return self._store.get(key)

    def put(self, key: str, value: Any) -> None:
        self._store[key] = value

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def values(self) -> Iterator[Any]:
        # Snapshot so callers may mutate while iterating
        return iter(list(self._store.values()))

    def __len__(self) -> int:
        return len(self._store)


# ============================================================
# Database
# ============================================================

class Database:
    """The credential store and the one-time-code store."""

    def __init__(
        self,
        accounts: KeyValueStore | None = None,
        otp_codes: KeyValueStore | None = None,
    ):
        self.accounts = accounts if accounts is not None else InMemoryStore(TABLE_ACCOUNTS)
        self.otp_codes = otp_codes if otp_codes is not None else InMemoryStore(TABLE_OTP_CODES)


@lru_cache(maxsize=1)
def get_database() -> Database:
    """
    Get the process-wide Database instance.

    Note:
        Uses lru_cache for singleton pattern.
    """
    log.info("In-memory database initialized")
    return Database()


def get_db() -> Database:
    """
    Dependency injection helper for FastAPI routes.

    Usage:
        @router.post("/example")
        def example(db: Database = Depends(get_db)):
            ...

    Tests replace it through app.dependency_overrides.
    """
    return get_database()


def check_db_health(db: Database | None = None) -> dict:
    """Report storage backend status for the /health endpoint."""
    db = db or get_database()
    return {
        "database": "ok",
        "backend": type(db.accounts).__name__,
    }
