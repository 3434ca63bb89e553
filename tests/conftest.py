"""Shared fixtures: every test gets its own SQLite file."""
from datetime import datetime, timedelta, timezone

import pytest

from config import get_settings
from contact_store import ContactStore
from db_models import LinkPrecedence
from db_setup import get_db_connection, init_db

BASE_TIME = datetime(2023, 4, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "contacts.db")
    monkeypatch.setenv("DB_PATH", path)
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    get_settings.cache_clear()
    init_db(path)
    yield path
    get_settings.cache_clear()


@pytest.fixture
def store(db_path):
    conn = get_db_connection(db_path)
    yield ContactStore(conn)
    conn.close()


@pytest.fixture
def seed(store):
    """Insert a contact at BASE_TIME + minutes; returns its id."""

    def _seed(email=None, phone=None, minutes=0, linked_id=None):
        precedence = LinkPrecedence.SECONDARY if linked_id else LinkPrecedence.PRIMARY
        return store.insert_contact(
            email, phone, linked_id, precedence,
            created_at=BASE_TIME + timedelta(minutes=minutes),
        )

    return _seed


@pytest.fixture
def contact_count(db_path):
    def _count():
        conn = get_db_connection(db_path)
        try:
            return conn.execute("SELECT COUNT(*) FROM Contact").fetchone()[0]
        finally:
            conn.close()

    return _count
