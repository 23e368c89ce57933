"""
Crash alert scheduling.

After every intake log or deletion the pending crash alert is replaced:
cancel all crash alerts for the user, re-run crash prediction over the
last 24h, and schedule one alert 30 minutes before the predicted crash
if that moment is still in the future.

Cancel-all is a full replace, so overlapping updates must not interleave.
CrashAlertScheduler serialises them with a lock that also covers loading
the records the prediction runs on.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Protocol

from caffeine_tracker.config import CRASH_NOTIFICATION_MINUTES
from caffeine_tracker.core import database
from caffeine_tracker.core.caffeine_engine import predict_crash, recent_intakes
from caffeine_tracker.core.models import IntakeRecord, SensitivityProfile

log = logging.getLogger("caffeine.alerts")


class AlertBackend(Protocol):
    def cancel_all_crash_alerts(self, user_id: Optional[int]) -> None: ...

    def schedule_crash_alert(self, user_id: Optional[int], alert_time: datetime,
                             crash_time: datetime, message: str) -> None: ...


class DatabaseAlertBackend:
    """Pending alerts stored in the crash_alerts table."""

    def cancel_all_crash_alerts(self, user_id: Optional[int]) -> None:
        removed = database.delete_crash_alerts(user_id)
        if removed:
            log.debug("Cancelled %d pending crash alert(s) for user %s", removed, user_id)

    def schedule_crash_alert(self, user_id: Optional[int], alert_time: datetime,
                             crash_time: datetime, message: str) -> None:
        database.insert_crash_alert(
            user_id, alert_time.isoformat(), crash_time.isoformat(), message,
        )


class InMemoryAlertBackend:
    """Keeps alerts in a list. Records every call in `calls` for inspection."""

    def __init__(self):
        self.alerts: list[dict] = []
        self.calls: list[str] = []

    def cancel_all_crash_alerts(self, user_id: Optional[int]) -> None:
        self.calls.append("cancel")
        self.alerts = [a for a in self.alerts if a["user_id"] != user_id]

    def schedule_crash_alert(self, user_id: Optional[int], alert_time: datetime,
                             crash_time: datetime, message: str) -> None:
        self.calls.append("schedule")
        self.alerts.append({
            "user_id": user_id,
            "alert_time": alert_time,
            "crash_time": crash_time,
            "message": message,
        })


def crash_alert_message(crash_time: datetime) -> str:
    return (
        f"Heads up: A caffeine crash is predicted around {crash_time:%H:%M}. "
        "Consider a short walk or a glass of water."
    )


class CrashAlertScheduler:
    def __init__(self, backend: AlertBackend,
                 lead_minutes: int = CRASH_NOTIFICATION_MINUTES):
        self.backend = backend
        self.lead = timedelta(minutes=lead_minutes)
        self._lock = threading.Lock()

    def update_crash_alert(
        self,
        records: Iterable[IntakeRecord],
        sensitivity: SensitivityProfile,
        now: datetime,
        user_id: Optional[int] = None,
    ) -> Optional[datetime]:
        """
        Replace the user's pending crash alert from an already loaded record list.
        Returns the scheduled alert time, or None if nothing was scheduled.
        """
        records = list(records)
        return self.refresh_crash_alert(lambda: records, sensitivity, now, user_id)

    def refresh_crash_alert(
        self,
        load_records: Callable[[], Iterable[IntakeRecord]],
        sensitivity: SensitivityProfile,
        now: datetime,
        user_id: Optional[int] = None,
    ) -> Optional[datetime]:
        """
        Replace the user's pending crash alert, loading records under the lock.

        The load happens inside the same critical section as cancel and
        schedule, so the last update to finish always reflects every
        intake written before it started.
        """
        with self._lock:
            recent = recent_intakes(load_records(), now)
            crash_time = predict_crash(recent, sensitivity.half_life_hours, now)

            self.backend.cancel_all_crash_alerts(user_id)
            if crash_time is None:
                return None

            alert_time = crash_time - self.lead
            if alert_time <= now:
                return None

            self.backend.schedule_crash_alert(
                user_id, alert_time, crash_time, crash_alert_message(crash_time),
            )
        log.info("Crash alert scheduled for %s (crash at %s)",
                 alert_time.isoformat(timespec="minutes"),
                 crash_time.isoformat(timespec="minutes"))
        return alert_time
