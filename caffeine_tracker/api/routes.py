"""
FastAPI API routes for the Caffeine Tracker.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from dateutil.parser import isoparse
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel, Field

from caffeine_tracker.config import (
    API_KEY,
    CHART_SAMPLE_MINUTES,
    FREE_HISTORY_DAYS,
    RECENT_WINDOW_HOURS,
)
from caffeine_tracker.core.alerts import CrashAlertScheduler, DatabaseAlertBackend
from caffeine_tracker.core.caffeine_engine import (
    active_caffeine,
    average_daily,
    crash_threshold,
    daily_total,
    energy_status,
    find_peak,
    group_by_day,
    predict_crash,
    recent_intakes,
    sample_levels,
    visible_history,
)
from caffeine_tracker.core.database import (
    delete_intake,
    get_all_intakes,
    get_intake,
    get_or_create_profile,
    get_pending_alerts,
    insert_intake,
    query_intakes,
    reset_onboarding,
    update_profile,
)
from caffeine_tracker.core.models import (
    PRESETS,
    IntakeRecord,
    SensitivityProfile,
    UserProfile,
    find_preset,
)
from caffeine_tracker.core.safety import (
    daily_limit,
    danger_level,
    evaluate_daily_status,
    evaluate_planned_intake,
    warning_level,
)

log = logging.getLogger("caffeine.api")

router = APIRouter(prefix="/api")

alert_scheduler = CrashAlertScheduler(DatabaseAlertBackend())


# --- Auth ---

def verify_api_key(x_api_key: str = Header(default="")):
    if API_KEY and x_api_key != API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")


# --- Models ---

class IntakeRequest(BaseModel):
    drink_name: str = Field(..., min_length=1, max_length=100)
    caffeine_mg: Optional[float] = Field(None, ge=0, le=2000)
    notes: str = ""
    timestamp: Optional[str] = None


class PlannedIntakeRequest(BaseModel):
    caffeine_mg: float = Field(..., ge=0, le=2000)


class ProfileRequest(BaseModel):
    weight_kg: Optional[float] = Field(None, ge=20, le=400)
    sensitivity: Optional[str] = Field(None, pattern="(?i)^(low|medium|high)$")
    is_onboarded: Optional[bool] = None


# --- Helpers ---

def _parse_timestamp(value: str) -> datetime:
    """ISO-8601 -> naive local datetime (aware inputs are converted)."""
    try:
        ts = isoparse(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid timestamp: {value}")
    if ts.tzinfo is not None:
        ts = ts.astimezone().replace(tzinfo=None)
    return ts


def _current_profile() -> UserProfile:
    return UserProfile.from_row(get_or_create_profile())


def _user_records(profile: UserProfile) -> list[IntakeRecord]:
    return [IntakeRecord.from_row(r) for r in get_all_intakes(profile.id)]


def _day_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def _todays_total(records: list[IntakeRecord], now: datetime) -> float:
    start, end = _day_bounds(now)
    return daily_total(records, start, end)


def _reschedule_crash_alert(profile: UserProfile, now: datetime) -> Optional[datetime]:
    try:
        return alert_scheduler.refresh_crash_alert(
            lambda: _user_records(profile), profile.sensitivity, now, user_id=profile.id,
        )
    except ValueError as e:
        log.warning("Crash alert not rescheduled: %s", e)
        return None


def _record_dict(record: IntakeRecord) -> dict:
    return {
        "id": record.id,
        "drink_name": record.drink_name,
        "caffeine_mg": record.caffeine_mg,
        "timestamp": record.timestamp.isoformat(),
    }


def _profile_dict(profile: UserProfile) -> dict:
    return {
        "id": profile.id,
        "weight_kg": profile.weight_kg,
        "sensitivity": profile.sensitivity.value,
        "sensitivity_name": profile.sensitivity.display_name,
        "sensitivity_description": profile.sensitivity.description,
        "half_life_hours": profile.sensitivity.half_life_hours,
        "is_onboarded": profile.is_onboarded,
        "daily_limit_mg": round(daily_limit(profile.weight_kg), 1),
        "warning_level_mg": round(warning_level(profile.weight_kg), 1),
        "danger_level_mg": round(danger_level(profile.weight_kg), 1),
    }


# --- Presets & profile ---

@router.get("/presets", dependencies=[Depends(verify_api_key)])
def get_presets():
    """Fixed drink presets for quick logging."""
    return [p.model_dump() for p in PRESETS]


@router.get("/profile", dependencies=[Depends(verify_api_key)])
def get_profile_route():
    """Current user profile (a default one is created on first access)."""
    return _profile_dict(_current_profile())


@router.put("/profile", dependencies=[Depends(verify_api_key)])
def update_profile_route(req: ProfileRequest):
    """
    Update weight and/or sensitivity. A sensitivity change applies
    retroactively to all logged intakes, so the crash alert is recomputed.
    """
    profile = _current_profile()
    sensitivity = SensitivityProfile.from_value(req.sensitivity) if req.sensitivity else None
    update_profile(
        profile.id,
        weight_kg=req.weight_kg,
        sensitivity=sensitivity.value if sensitivity else None,
        is_onboarded=req.is_onboarded,
    )
    profile = _current_profile()
    if sensitivity is not None:
        _reschedule_crash_alert(profile, datetime.now())
    return _profile_dict(profile)


@router.post("/profile/reset", dependencies=[Depends(verify_api_key)])
def reset_profile_route():
    """Restart onboarding. Intake history is kept."""
    profile = _current_profile()
    reset_onboarding(profile.id)
    return {"id": profile.id, "is_onboarded": False, "status": "ok"}


# --- Intake ---

@router.post("/intake", dependencies=[Depends(verify_api_key)])
def log_intake(req: IntakeRequest):
    """
    Log a caffeine intake (preset name or custom drink with caffeine_mg).
    Returns a safety warning when the new daily total warrants one.
    """
    dose = req.caffeine_mg
    if dose is None:
        preset = find_preset(req.drink_name)
        if preset is None:
            raise HTTPException(
                status_code=422,
                detail=f"Unknown preset '{req.drink_name}'; caffeine_mg is required for custom drinks",
            )
        dose = preset.caffeine_mg

    now = datetime.now()
    ts = _parse_timestamp(req.timestamp) if req.timestamp else now
    profile = _current_profile()

    today_total = _todays_total(_user_records(profile), ts)
    warning = evaluate_planned_intake(dose, today_total, profile.weight_kg)

    row_id = insert_intake(req.drink_name, dose, profile.id, req.notes, ts.isoformat())
    log.info("Logged %s %.0fmg (#%d)", req.drink_name, dose, row_id)

    alert_time = _reschedule_crash_alert(profile, now)

    result = {
        "id": row_id,
        "drink_name": req.drink_name,
        "caffeine_mg": dose,
        "timestamp": ts.isoformat(),
        "status": "ok",
        "alert_time": alert_time.isoformat() if alert_time else None,
    }
    if warning:
        result["warning"] = warning.model_dump(mode="json")
    return result


@router.post("/intake/check", dependencies=[Depends(verify_api_key)])
def check_intake(req: PlannedIntakeRequest):
    """Safety check for a planned intake, without logging it."""
    now = datetime.now()
    profile = _current_profile()
    today_total = _todays_total(_user_records(profile), now)
    warning = evaluate_planned_intake(req.caffeine_mg, today_total, profile.weight_kg)
    return {
        "daily_total_mg": round(today_total, 1),
        "new_total_mg": round(today_total + req.caffeine_mg, 1),
        "daily_limit_mg": round(daily_limit(profile.weight_kg), 1),
        "warning": warning.model_dump(mode="json") if warning else None,
    }


@router.get("/intake", dependencies=[Depends(verify_api_key)])
def get_intakes(
    start: Optional[str] = None,
    end: Optional[str] = None,
    today: bool = False,
):
    """Query intake events."""
    profile = _current_profile()
    now = datetime.now()
    if today:
        day_start, day_end = _day_bounds(now)
        return query_intakes(day_start.isoformat(), day_end.isoformat(), profile.id)
    if start and end:
        return query_intakes(
            _parse_timestamp(start).isoformat(), _parse_timestamp(end).isoformat(), profile.id,
        )
    # Default: last 24h
    return query_intakes(
        (now - timedelta(hours=24)).isoformat(),
        now.isoformat(),
        profile.id,
    )


@router.delete("/intake/{intake_id}", dependencies=[Depends(verify_api_key)])
def delete_intake_route(intake_id: int):
    """Delete an intake event by ID and recompute the crash alert."""
    existing = get_intake(intake_id)
    if not existing or not delete_intake(intake_id):
        raise HTTPException(status_code=404, detail="Intake not found")

    profile = _current_profile()
    alert_time = _reschedule_crash_alert(profile, datetime.now())
    return {
        "deleted": intake_id,
        "status": "ok",
        "alert_time": alert_time.isoformat() if alert_time else None,
    }


@router.get("/history", dependencies=[Depends(verify_api_key)])
def get_history(premium: bool = False):
    """
    Intake history grouped by day, newest first.
    Free accounts only see the last FREE_HISTORY_DAYS days.
    """
    now = datetime.now()
    profile = _current_profile()
    records = visible_history(_user_records(profile), now, is_premium=premium)

    days = []
    for day, entries in group_by_day(records).items():
        days.append({
            "date": day.isoformat(),
            "total_mg": round(sum(e.caffeine_mg for e in entries), 1),
            "entries": [_record_dict(e) for e in entries],
        })
    return {
        "limited": not premium,
        "history_days": None if premium else FREE_HISTORY_DAYS,
        "days": days,
    }


# --- Caffeine model ---

@router.get("/caffeine/status", dependencies=[Depends(verify_api_key)])
def get_caffeine_status(timestamp: Optional[str] = None):
    """
    Active caffeine, energy gauge (scaled to the daily limit), peak,
    predicted crash, safety warning and 30-day stats at a given time
    (default: now).
    The model uses only the last 24h of intakes.
    """
    now = _parse_timestamp(timestamp) if timestamp else datetime.now()
    profile = _current_profile()
    half_life = profile.sensitivity.half_life_hours

    records = _user_records(profile)
    recent = recent_intakes(records, now, RECENT_WINDOW_HOURS)
    active = active_caffeine(recent, half_life, now)
    total_today = _todays_total(records, now)
    limit = daily_limit(profile.weight_kg)

    peak = None
    crash_time = None
    threshold = None
    try:
        peak = find_peak(recent, half_life, now)
        crash_time = predict_crash(recent, half_life, now)
        if peak:
            threshold = crash_threshold(peak[1])
    except ValueError as e:
        log.warning("Prediction unavailable: %s", e)
        peak = crash_time = threshold = None

    warning = evaluate_daily_status(total_today, active, profile.weight_kg)

    minutes_until_crash = None
    if crash_time and crash_time > now:
        minutes_until_crash = int((crash_time - now).total_seconds() // 60)

    return {
        "timestamp": now.isoformat(),
        "active_mg": round(active, 1),
        "total_today_mg": round(total_today, 1),
        "daily_limit_mg": round(limit, 1),
        "max_daily_mg": round(limit, 1),
        "energy": energy_status(active, limit),
        "sensitivity": profile.sensitivity.value,
        "half_life_hours": half_life,
        "peak": {
            "time": peak[0].isoformat(),
            "active_mg": round(peak[1], 1),
        } if peak else None,
        "crash_threshold_mg": round(threshold, 1) if threshold is not None else None,
        "crash_time": crash_time.isoformat() if crash_time else None,
        "minutes_until_crash": minutes_until_crash,
        "warning": warning.model_dump(mode="json") if warning else None,
        "intake_count": len(recent),
        "average_daily_mg": round(average_daily(records, now), 1),
        "total_entries": len(records),
    }


@router.get("/caffeine/curve", dependencies=[Depends(verify_api_key)])
def get_caffeine_curve(
    timestamp: Optional[str] = None,
    interval: int = Query(default=CHART_SAMPLE_MINUTES, ge=1, le=60),
    hours_before: int = Query(default=12, ge=0, le=48),
    hours_after: int = Query(default=12, ge=0, le=48),
):
    """Active caffeine samples around a time (default: now +-12h)."""
    now = _parse_timestamp(timestamp) if timestamp else datetime.now()
    profile = _current_profile()
    recent = recent_intakes(_user_records(profile), now, RECENT_WINDOW_HOURS)

    samples = sample_levels(
        recent,
        profile.sensitivity.half_life_hours,
        now - timedelta(hours=hours_before),
        now + timedelta(hours=hours_after),
        interval,
    )
    return {
        "timestamp": now.isoformat(),
        "interval_minutes": interval,
        "points": [
            {"timestamp": s.timestamp.isoformat(), "active_mg": round(s.active_mg, 1)}
            for s in samples
        ],
    }


@router.get("/alerts", dependencies=[Depends(verify_api_key)])
def get_alerts():
    """Pending crash alerts that have not fired yet."""
    profile = _current_profile()
    return get_pending_alerts(profile.id, after=datetime.now().isoformat())


@router.get("/status")
def status():
    """Health check endpoint."""
    return {
        "service": "caffeine-tracker",
        "status": "ok",
        "version": "1.0.0",
        "timestamp": datetime.now().isoformat(),
        "model": "first-order-elimination",
    }
