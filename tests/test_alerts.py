import threading
from datetime import timedelta

from caffeine_tracker.core.alerts import (
    CrashAlertScheduler,
    DatabaseAlertBackend,
    InMemoryAlertBackend,
    crash_alert_message,
)
from caffeine_tracker.core.models import SensitivityProfile

MEDIUM = SensitivityProfile.MEDIUM


def test_schedules_alert_before_crash(t0, make_record):
    """100mg at t0 crashes at t0+397min; the alert goes out 30 minutes earlier."""
    backend = InMemoryAlertBackend()
    scheduler = CrashAlertScheduler(backend)

    alert_time = scheduler.update_crash_alert([make_record(t0)], MEDIUM, t0 + timedelta(hours=1), user_id=1)

    assert alert_time == t0 + timedelta(minutes=367)
    assert backend.calls == ["cancel", "schedule"]
    assert len(backend.alerts) == 1
    alert = backend.alerts[0]
    assert alert["crash_time"] == t0 + timedelta(minutes=397)
    assert alert["message"] == crash_alert_message(alert["crash_time"])
    assert "14:37" in alert["message"]


def test_update_replaces_previous_alert(t0, make_record):
    backend = InMemoryAlertBackend()
    scheduler = CrashAlertScheduler(backend)
    now = t0 + timedelta(minutes=10)

    scheduler.update_crash_alert([make_record(t0)], MEDIUM, now, user_id=1)
    scheduler.update_crash_alert([make_record(t0), make_record(t0 + timedelta(minutes=5))], MEDIUM, now, user_id=1)

    assert len(backend.alerts) == 1
    assert backend.calls == ["cancel", "schedule", "cancel", "schedule"]


def test_no_alert_when_it_would_be_in_the_past(t0, make_record):
    backend = InMemoryAlertBackend()
    scheduler = CrashAlertScheduler(backend)

    assert scheduler.update_crash_alert([make_record(t0)], MEDIUM, t0 + timedelta(hours=7)) is None
    assert backend.calls == ["cancel"]
    assert backend.alerts == []


def test_no_intakes_only_cancels(t0):
    backend = InMemoryAlertBackend()
    backend.alerts.append({"user_id": 1, "alert_time": t0, "crash_time": t0, "message": ""})

    assert CrashAlertScheduler(backend).update_crash_alert([], MEDIUM, t0, user_id=1) is None
    assert backend.calls == ["cancel"]
    assert backend.alerts == []


def test_intakes_older_than_a_day_are_ignored(t0, make_record):
    backend = InMemoryAlertBackend()
    now = t0 + timedelta(hours=25)

    assert CrashAlertScheduler(backend).update_crash_alert([make_record(t0, 400.0)], MEDIUM, now) is None
    assert backend.calls == ["cancel"]


def test_sensitivity_changes_alert_time(t0, make_record):
    records = [make_record(t0, 400.0)]
    now = t0 + timedelta(minutes=1)
    medium = CrashAlertScheduler(InMemoryAlertBackend()).update_crash_alert(records, MEDIUM, now)
    high = CrashAlertScheduler(InMemoryAlertBackend()).update_crash_alert(
        records, SensitivityProfile.HIGH, now,
    )
    # Two half-lives each: 10h vs 8h
    assert medium == t0 + timedelta(hours=10, minutes=-30)
    assert high == t0 + timedelta(hours=8, minutes=-30)


def test_database_backend_keeps_one_pending_alert(db, t0, make_record):
    profile_id = db.create_profile()
    scheduler = CrashAlertScheduler(DatabaseAlertBackend())
    now = t0 + timedelta(minutes=5)

    scheduler.update_crash_alert([make_record(t0)], MEDIUM, now, user_id=profile_id)
    scheduler.update_crash_alert([make_record(t0, 200.0)], MEDIUM, now, user_id=profile_id)

    pending = db.get_pending_alerts(profile_id)
    assert len(pending) == 1
    assert pending[0]["crash_time"] > pending[0]["alert_time"]

    scheduler.update_crash_alert([], MEDIUM, now, user_id=profile_id)
    assert db.get_pending_alerts(profile_id) == []


def test_concurrent_refresh_uses_records_written_before_it_ran(t0, make_record):
    """
    A refresh that is still loading blocks a second one; the second then
    sees every intake, so the surviving alert covers both doses.
    """
    backend = InMemoryAlertBackend()
    scheduler = CrashAlertScheduler(backend)
    now = t0 + timedelta(minutes=1)
    store = [make_record(t0, 100.0)]

    loading = threading.Event()
    release = threading.Event()

    def slow_load():
        snapshot = list(store)
        loading.set()
        release.wait(timeout=5)
        return snapshot

    first = threading.Thread(
        target=scheduler.refresh_crash_alert, args=(slow_load, MEDIUM, now, 1),
    )
    first.start()
    assert loading.wait(timeout=5)

    store.append(make_record(t0, 400.0))
    second = threading.Thread(
        target=scheduler.refresh_crash_alert, args=(lambda: list(store), MEDIUM, now, 1),
    )
    second.start()
    second.join(timeout=0.2)
    assert second.is_alive()

    release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    expected = CrashAlertScheduler(InMemoryAlertBackend()).update_crash_alert(store, MEDIUM, now)
    assert len(backend.alerts) == 1
    assert backend.alerts[0]["alert_time"] == expected
    assert backend.calls == ["cancel", "schedule", "cancel", "schedule"]
