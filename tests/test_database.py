import sqlite3

import pytest


def test_get_or_create_profile_creates_default(db):
    assert db.get_profile() is None
    profile = db.get_or_create_profile()
    assert profile["weight_kg"] == 70
    assert profile["sensitivity"] == "MEDIUM"
    assert db.get_or_create_profile()["id"] == profile["id"]


def test_update_and_reset_profile(db):
    pid = db.create_profile(weight_kg=60, is_onboarded=True)
    assert db.update_profile(pid, weight_kg=82.5, sensitivity="HIGH")
    assert not db.update_profile(pid)

    profile = db.get_profile()
    assert profile["weight_kg"] == 82.5
    assert profile["sensitivity"] == "HIGH"
    assert profile["is_onboarded"] == 1

    db.reset_onboarding(pid)
    assert db.get_profile()["is_onboarded"] == 0


def test_schema_rejects_invalid_values(db):
    with pytest.raises(sqlite3.IntegrityError):
        db.create_profile(weight_kg=0)
    with pytest.raises(sqlite3.IntegrityError):
        db.insert_intake("Bad", -5)


def test_intake_crud(db):
    pid = db.create_profile()
    first = db.insert_intake("Espresso Shot", 63, pid, timestamp="2026-03-14T08:00:00")
    db.insert_intake("Black Tea", 47, pid, timestamp="2026-03-14T15:30:00")
    db.insert_intake("Soda (12oz)", 35, pid, timestamp="2026-03-15T09:00:00")

    assert db.get_intake(first)["drink_name"] == "Espresso Shot"
    day = db.query_intakes("2026-03-14T00:00:00", "2026-03-14T23:59:59.999999", pid)
    assert [r["caffeine_mg"] for r in day] == [63, 47]
    assert len(db.get_all_intakes(pid)) == 3

    assert db.delete_intake(first)
    assert not db.delete_intake(first)
    assert db.get_intake(first) is None


def test_intakes_are_scoped_to_user(db):
    a = db.create_profile()
    b = db.create_profile()
    db.insert_intake("Coffee (8oz)", 95, a, timestamp="2026-03-14T08:00:00")
    assert len(db.get_all_intakes(a)) == 1
    assert db.get_all_intakes(b) == []
    assert len(db.get_all_intakes()) == 1


def test_pending_alerts_filter_by_time(db):
    pid = db.create_profile()
    db.insert_crash_alert(pid, "2026-03-14T09:00:00", "2026-03-14T09:30:00", "early")
    db.insert_crash_alert(pid, "2026-03-14T15:00:00", "2026-03-14T15:30:00", "late")

    pending = db.get_pending_alerts(pid, after="2026-03-14T12:00:00")
    assert [a["message"] for a in pending] == ["late"]
    assert db.delete_crash_alerts(pid) == 2
    assert db.get_pending_alerts(pid) == []


def test_init_db_is_idempotent(db):
    pid = db.create_profile(weight_kg=64)
    db.insert_intake("Green Tea", 28, pid, timestamp="2026-03-14T08:00:00")
    db.insert_crash_alert(pid, "2026-03-14T13:00:00", "2026-03-14T13:30:00")

    db.init_db()

    assert db.get_profile()["weight_kg"] == 64
    assert [r["drink_name"] for r in db.get_all_intakes(pid)] == ["Green Tea"]
    assert len(db.get_pending_alerts(pid)) == 1
