# tests/test_db.py
"""In-memory store tests."""

from app.db import Database, InMemoryStore, TABLE_ACCOUNTS, TABLE_OTP_CODES, check_db_health, get_database


class TestInMemoryStore:

    def test_put_get_delete(self):
        store = InMemoryStore("things")
        assert store.get("a") is None

        store.put("a", 1)
        assert store.get("a") == 1
        assert "a" in store
        assert len(store) == 1

        assert store.delete("a") is True
        assert store.delete("a") is False
        assert "a" not in store

    def test_last_write_wins(self):
        store = InMemoryStore()
        store.put("a", 1)
        store.put("a", 2)
        assert store.get("a") == 2
        assert len(store) == 1

    def test_values_is_a_snapshot(self):
        store = InMemoryStore()
        store.put("a", 1)
        store.put("b", 2)
        for value in store.values():
            store.delete("a")
        assert list(store.values()) == [2]


class TestDatabase:

    def test_stores_are_separate(self):
        db = Database()
        db.accounts.put("x@example.com", "account")
        assert db.otp_codes.get("x@example.com") is None
        assert db.accounts.name == TABLE_ACCOUNTS
        assert db.otp_codes.name == TABLE_OTP_CODES

    def test_custom_stores(self):
        accounts = InMemoryStore("custom")
        db = Database(accounts=accounts)
        assert db.accounts is accounts

    def test_fresh_databases_do_not_share_state(self):
        a, b = Database(), Database()
        a.accounts.put("k", 1)
        assert b.accounts.get("k") is None

    def test_process_database_is_singleton(self):
        assert get_database() is get_database()

    def test_health(self):
        assert check_db_health(Database()) == {"database": "ok", "backend": "InMemoryStore"}
