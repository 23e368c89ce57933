"""
SQLite database setup and access layer.
Schema: user_profiles, intake_events, crash_alerts.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from caffeine_tracker.config import DB_PATH, DEFAULT_SENSITIVITY, DEFAULT_WEIGHT_KG

log = logging.getLogger("caffeine.db")

_local = threading.local()

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS user_profiles (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    weight_kg    REAL    NOT NULL CHECK(weight_kg > 0),
    sensitivity  TEXT    NOT NULL DEFAULT 'MEDIUM' CHECK(sensitivity IN ('LOW','MEDIUM','HIGH')),
    is_onboarded INTEGER NOT NULL DEFAULT 0 CHECK(is_onboarded IN (0, 1)),
    created_at   TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS intake_events (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp   TEXT    NOT NULL,
    drink_name  TEXT    NOT NULL,
    caffeine_mg REAL    NOT NULL CHECK(caffeine_mg >= 0),
    user_id     INTEGER REFERENCES user_profiles(id),
    notes       TEXT    DEFAULT ''
);

CREATE INDEX IF NOT EXISTS idx_intake_ts ON intake_events(timestamp);

CREATE TABLE IF NOT EXISTS crash_alerts (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id     INTEGER,
    alert_time  TEXT    NOT NULL,
    crash_time  TEXT    NOT NULL,
    message     TEXT    DEFAULT '',
    created_at  TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_alert_time ON crash_alerts(alert_time);
"""


def get_connection() -> sqlite3.Connection:
    """Thread-local SQLite connection with WAL mode, reopened if DB_PATH changes."""
    if getattr(_local, "conn", None) is None or getattr(_local, "path", None) != DB_PATH:
        DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(DB_PATH), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        _local.conn = conn
        _local.path = DB_PATH
    return _local.conn


def close_connection():
    conn = getattr(_local, "conn", None)
    if conn is not None:
        conn.close()
    _local.conn = None
    _local.path = None


@contextmanager
def db_cursor():
    """Yield a cursor, auto-commit on success, rollback on error."""
    conn = get_connection()
    cur = conn.cursor()
    try:
        yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def init_db():
    """Create tables and indexes if they don't exist. Safe to call on every start."""
    with db_cursor() as cur:
        cur.executescript(SCHEMA_SQL)
    log.info("Database initialized at %s", DB_PATH)


# --- User profile ---

def get_profile() -> Optional[dict]:
    """The active profile is the most recently created one."""
    with db_cursor() as cur:
        cur.execute("SELECT * FROM user_profiles ORDER BY id DESC LIMIT 1")
        row = cur.fetchone()
        return dict(row) if row else None


def create_profile(weight_kg: float = DEFAULT_WEIGHT_KG,
                   sensitivity: str = DEFAULT_SENSITIVITY,
                   is_onboarded: bool = False) -> int:
    with db_cursor() as cur:
        cur.execute(
            "INSERT INTO user_profiles (weight_kg, sensitivity, is_onboarded, created_at) VALUES (?,?,?,?)",
            (weight_kg, sensitivity, int(is_onboarded), datetime.now().isoformat()),
        )
        return cur.lastrowid


def get_or_create_profile() -> dict:
    profile = get_profile()
    if profile is None:
        create_profile()
        profile = get_profile()
    return profile


def update_profile(profile_id: int, weight_kg: Optional[float] = None,
                   sensitivity: Optional[str] = None,
                   is_onboarded: Optional[bool] = None) -> bool:
    fields, values = [], []
    if weight_kg is not None:
        fields.append("weight_kg=?")
        values.append(weight_kg)
    if sensitivity is not None:
        fields.append("sensitivity=?")
        values.append(sensitivity)
    if is_onboarded is not None:
        fields.append("is_onboarded=?")
        values.append(int(is_onboarded))
    if not fields:
        return False
    with db_cursor() as cur:
        cur.execute(
            f"UPDATE user_profiles SET {', '.join(fields)} WHERE id=?",
            (*values, profile_id),
        )
        return cur.rowcount > 0


def reset_onboarding(profile_id: int) -> bool:
    """Clear the onboarding flag; intake history is kept."""
    return update_profile(profile_id, is_onboarded=False)


# --- Intake events ---

def insert_intake(drink_name: str, caffeine_mg: float, user_id: Optional[int] = None,
                  notes: str = "", timestamp: Optional[str] = None) -> int:
    ts = timestamp or datetime.now().isoformat()
    with db_cursor() as cur:
        cur.execute(
            "INSERT INTO intake_events (timestamp, drink_name, caffeine_mg, user_id, notes) VALUES (?,?,?,?,?)",
            (ts, drink_name, caffeine_mg, user_id, notes),
        )
        return cur.lastrowid


def get_intake(intake_id: int) -> Optional[dict]:
    with db_cursor() as cur:
        cur.execute("SELECT * FROM intake_events WHERE id=?", (intake_id,))
        row = cur.fetchone()
        return dict(row) if row else None


def query_intakes(start: str, end: str, user_id: Optional[int] = None) -> list[dict]:
    with db_cursor() as cur:
        cur.execute(
            """SELECT * FROM intake_events
               WHERE timestamp BETWEEN ? AND ? AND (? IS NULL OR user_id = ?)
               ORDER BY timestamp""",
            (start, end, user_id, user_id),
        )
        return [dict(r) for r in cur.fetchall()]


def get_all_intakes(user_id: Optional[int] = None) -> list[dict]:
    with db_cursor() as cur:
        cur.execute(
            "SELECT * FROM intake_events WHERE (? IS NULL OR user_id = ?) ORDER BY timestamp",
            (user_id, user_id),
        )
        return [dict(r) for r in cur.fetchall()]


def delete_intake(intake_id: int) -> bool:
    with db_cursor() as cur:
        cur.execute("DELETE FROM intake_events WHERE id=?", (intake_id,))
        return cur.rowcount > 0


# --- Crash alerts ---

def insert_crash_alert(user_id: Optional[int], alert_time: str,
                       crash_time: str, message: str = "") -> int:
    with db_cursor() as cur:
        cur.execute(
            """INSERT INTO crash_alerts (user_id, alert_time, crash_time, message, created_at)
               VALUES (?,?,?,?,?)""",
            (user_id, alert_time, crash_time, message, datetime.now().isoformat()),
        )
        return cur.lastrowid


def delete_crash_alerts(user_id: Optional[int] = None) -> int:
    """Delete all pending crash alerts for a user (all users if None)."""
    with db_cursor() as cur:
        cur.execute(
            "DELETE FROM crash_alerts WHERE (? IS NULL OR user_id = ?)",
            (user_id, user_id),
        )
        return cur.rowcount


def get_pending_alerts(user_id: Optional[int] = None,
                       after: Optional[str] = None) -> list[dict]:
    with db_cursor() as cur:
        cur.execute(
            """SELECT * FROM crash_alerts
               WHERE (? IS NULL OR user_id = ?) AND (? IS NULL OR alert_time > ?)
               ORDER BY alert_time""",
            (user_id, user_id, after, after),
        )
        return [dict(r) for r in cur.fetchall()]
