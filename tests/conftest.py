from datetime import datetime

import pytest

from caffeine_tracker.core import database
from caffeine_tracker.core.models import IntakeRecord


@pytest.fixture
def t0() -> datetime:
    """A fixed reference time on a whole minute."""
    return datetime(2026, 3, 14, 8, 0, 0)


@pytest.fixture
def make_record():
    def _make(timestamp: datetime, caffeine_mg: float = 100.0,
              drink_name: str = "Coffee (8oz)") -> IntakeRecord:
        return IntakeRecord(drink_name=drink_name, caffeine_mg=caffeine_mg, timestamp=timestamp)
    return _make


@pytest.fixture
def db(tmp_path, monkeypatch):
    """
    Fresh SQLite database in a temp dir for each test.
    """
    monkeypatch.setattr(database, "DB_PATH", tmp_path / "caffeine.db")
    database.close_connection()
    database.init_db()
    yield database
    database.close_connection()


@pytest.fixture
def client(db, monkeypatch):
    from fastapi.testclient import TestClient

    from caffeine_tracker.api import routes
    from caffeine_tracker.main import app

    monkeypatch.setattr(routes, "API_KEY", "")
    with TestClient(app) as c:
        yield c
