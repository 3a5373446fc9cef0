# tests/proofer/test_cache_store.py
import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from proofer.managers.cache_store_manager import CacheStoreManager
from proofer.model import CacheEntry

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "cache" / "cache.db"


def test_upsert_and_get(db_path):
    with CacheStoreManager(db_path) as store:
        store.upsert(CacheEntry(key="https://example.com/", ok=True, status=200, checked_at=T0))
        entry = store.get("https://example.com/")

    assert entry.ok is True
    assert entry.status == 200
    assert entry.checked_at == T0
    assert db_path.exists()


def test_get_unknown_key(db_path):
    with CacheStoreManager(db_path) as store:
        assert store.get("https://nowhere.example/") is None


def test_upsert_overwrites(db_path):
    with CacheStoreManager(db_path) as store:
        store.upsert(CacheEntry(key="k", ok=True, status=200, checked_at=T0))
        store.upsert(CacheEntry(key="k", ok=False, status=404, message="HTTP 404", checked_at=T0))

        entry = store.get("k")
        assert (entry.ok, entry.status, entry.message) == (False, 404, "HTTP 404")
        assert store.count() == 1


def test_entries_survive_reopening(db_path):
    with CacheStoreManager(db_path) as store:
        store.upsert(CacheEntry(key="k", ok=True, status=200, checked_at=T0))

    with CacheStoreManager(db_path) as store:
        assert store.get("k").status == 200

    # The WAL has been checkpointed into the database file on close
    with sqlite3.connect(str(db_path)) as conn:
        assert conn.execute("SELECT COUNT(*) FROM external_cache").fetchone()[0] == 1


def test_ttl_expiry(db_path, clock):
    store = CacheStoreManager(db_path, ttl=timedelta(days=30), clock=clock)
    with store:
        store.upsert(CacheEntry(key="k", ok=True, status=200, checked_at=T0))

        clock.now = T0 + timedelta(days=29, hours=23)
        assert store.get("k") is not None

        clock.now = T0 + timedelta(days=30, seconds=1)
        assert store.get("k") is None


def test_without_ttl_entries_never_expire(db_path, clock):
    with CacheStoreManager(db_path, clock=clock) as store:
        store.upsert(CacheEntry(key="k", ok=True, status=200, checked_at=T0))
        clock.now = T0 + timedelta(days=3650)
        assert store.get("k") is not None


def test_in_memory_store():
    with CacheStoreManager() as store:
        store.upsert(CacheEntry(key="k", ok=False, status=-1, message="Connection refused"))
        assert store.get("k").message == "Connection refused"
        store.clear()
        assert store.count() == 0
