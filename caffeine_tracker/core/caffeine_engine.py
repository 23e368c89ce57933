"""
Caffeine Engine: single-compartment first-order elimination model,
timeline sampling, peak detection and crash prediction.

Decay model (linear superposition over all logged intakes):
  A(t) = SUM_i D_i * 0.5^((t - tau_i) / t_half) * H(t - tau_i)
  where D_i is the dose in mg, tau_i the intake time and H the Heaviside
  step (future-dated intakes contribute nothing until they happen).

Half-life by sensitivity:
  LOW 6.0h, MEDIUM 5.0h, HIGH 4.0h

Crash:
  threshold = max(peak * 0.25, 40 mg)
  crash time = first minute after the peak with A(t) <= threshold,
  searched up to 24h past the peak.

All functions take the reference time explicitly and hold no state,
so results are reproducible and safe to call from any thread.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from caffeine_tracker.config import (
    CRASH_MINIMUM_LEVEL_MG,
    CRASH_SAMPLE_MINUTES,
    CRASH_SEARCH_HORIZON_HOURS,
    CRASH_THRESHOLD_PERCENTAGE,
    FREE_HISTORY_DAYS,
    MAX_DAILY_AMOUNT_MG,
    PEAK_SAMPLE_MINUTES,
    PEAK_WINDOW_HOURS,
    RECENT_WINDOW_HOURS,
    STATS_WINDOW_DAYS,
)
from caffeine_tracker.core.models import CaffeineLevelSample, IntakeRecord


def _check_half_life(half_life_hours: float) -> None:
    if half_life_hours <= 0:
        raise ValueError(f"half_life_hours must be > 0, got {half_life_hours}")


# ── Decay model ──────────────────────────────────────────────────────

def remaining_fraction(hours_since: float, half_life_hours: float) -> float:
    """Fraction of a dose still active after `hours_since` hours."""
    if hours_since < 0:
        return 0.0
    return 0.5 ** (hours_since / half_life_hours)


def active_caffeine(
    records: Iterable[IntakeRecord],
    half_life_hours: float,
    at_time: datetime,
) -> float:
    """
    Active caffeine (mg) at `at_time`, summed over all records.
    No upper clamp: display limits are the caller's concern.
    """
    _check_half_life(half_life_hours)
    total = 0.0
    for record in records:
        hours_since = (at_time - record.timestamp).total_seconds() / 3600.0
        if hours_since < 0:  # Heaviside: future intakes contribute 0
            continue
        total += record.caffeine_mg * remaining_fraction(hours_since, half_life_hours)
    return total


# ── Timeline sampler ─────────────────────────────────────────────────

def sample_levels(
    records: Iterable[IntakeRecord],
    half_life_hours: float,
    start: datetime,
    end: datetime,
    step_minutes: float = 15,
) -> list[CaffeineLevelSample]:
    """
    Sample active caffeine from `start` to `end` inclusive at a fixed step.
    An `end` that falls exactly on a step is included.
    """
    _check_half_life(half_life_hours)
    if step_minutes <= 0:
        raise ValueError(f"step_minutes must be > 0, got {step_minutes}")

    records = list(records)
    step = timedelta(minutes=step_minutes)
    samples = []
    t = start
    while t <= end:
        samples.append(CaffeineLevelSample(
            timestamp=t,
            active_mg=active_caffeine(records, half_life_hours, t),
        ))
        t += step
    return samples


# ── Peak / crash analysis ────────────────────────────────────────────

def find_peak(
    records: Iterable[IntakeRecord],
    half_life_hours: float,
    now: datetime,
    within_hours: float = PEAK_WINDOW_HOURS,
) -> Optional[tuple[datetime, float]]:
    """
    Highest sampled level between the earliest intake and now + within_hours.
    5-minute resolution; the first maximum wins on ties.
    Returns None when there are no records.
    """
    _check_half_life(half_life_hours)
    records = list(records)
    if not records:
        return None

    start = min(r.timestamp for r in records)
    end = now + timedelta(hours=within_hours)
    samples = sample_levels(records, half_life_hours, start, end, PEAK_SAMPLE_MINUTES)

    peak: Optional[CaffeineLevelSample] = None
    for sample in samples:
        if peak is None or sample.active_mg > peak.active_mg:
            peak = sample
    if peak is None:
        return None
    return peak.timestamp, peak.active_mg


def crash_threshold(
    peak_mg: float,
    threshold_percentage: float = CRASH_THRESHOLD_PERCENTAGE,
    minimum_level_mg: float = CRASH_MINIMUM_LEVEL_MG,
) -> float:
    """Level at which a crash is declared. Floored so tiny peaks still get a usable threshold."""
    return max(peak_mg * threshold_percentage, minimum_level_mg)


def predict_crash(
    records: Iterable[IntakeRecord],
    half_life_hours: float,
    now: datetime,
    threshold_percentage: float = CRASH_THRESHOLD_PERCENTAGE,
    horizon_hours: float = CRASH_SEARCH_HORIZON_HOURS,
    minimum_level_mg: float = CRASH_MINIMUM_LEVEL_MG,
) -> Optional[datetime]:
    """
    First time after the peak at which active caffeine drops to the crash
    threshold. Scans in 1-minute steps for up to `horizon_hours` past the
    peak; returns None if there is no peak or no crash within the horizon.
    """
    _check_half_life(half_life_hours)
    if threshold_percentage < 0:
        raise ValueError(f"threshold_percentage must be >= 0, got {threshold_percentage}")
    if horizon_hours <= 0:
        raise ValueError(f"horizon_hours must be > 0, got {horizon_hours}")

    records = list(records)
    peak = find_peak(records, half_life_hours, now)
    if peak is None:
        return None
    peak_time, peak_mg = peak

    threshold = crash_threshold(peak_mg, threshold_percentage, minimum_level_mg)
    step = timedelta(minutes=CRASH_SAMPLE_MINUTES)
    end = peak_time + timedelta(hours=horizon_hours)

    t = peak_time
    while t < end:
        if active_caffeine(records, half_life_hours, t) <= threshold:
            return t
        t += step
    return None


# ── Record windows ───────────────────────────────────────────────────

def recent_intakes(
    records: Iterable[IntakeRecord],
    now: datetime,
    within_hours: float = RECENT_WINDOW_HOURS,
) -> list[IntakeRecord]:
    """Records logged strictly after now - within_hours."""
    cutoff = now - timedelta(hours=within_hours)
    return [r for r in records if r.timestamp > cutoff]


def visible_history(
    records: Iterable[IntakeRecord],
    now: datetime,
    is_premium: bool,
    free_history_days: int = FREE_HISTORY_DAYS,
) -> list[IntakeRecord]:
    """Premium users see everything; free users only the last `free_history_days` days."""
    if is_premium:
        return list(records)
    cutoff = now - timedelta(days=free_history_days)
    return [r for r in records if r.timestamp >= cutoff]


def daily_total(
    records: Iterable[IntakeRecord],
    start: datetime,
    end: datetime,
) -> float:
    """Raw (undecayed) mg logged between start and end inclusive."""
    return sum(r.caffeine_mg for r in records if start <= r.timestamp <= end)


def group_by_day(records: Iterable[IntakeRecord]) -> dict[date, list[IntakeRecord]]:
    """Group records by calendar day, newest day first, newest record first."""
    groups: dict[date, list[IntakeRecord]] = defaultdict(list)
    for record in sorted(records, key=lambda r: r.timestamp, reverse=True):
        groups[record.timestamp.date()].append(record)
    return dict(sorted(groups.items(), reverse=True))


def average_daily(
    records: Iterable[IntakeRecord],
    now: datetime,
    days: int = STATS_WINDOW_DAYS,
) -> float:
    """
    Mean mg per day over the last `days` days. The divisor is always
    `days`, not the number of days with entries. 0 with no entries.
    """
    if days <= 0:
        raise ValueError(f"days must be > 0, got {days}")
    cutoff = now - timedelta(days=days)
    return sum(r.caffeine_mg for r in records if r.timestamp > cutoff) / days


# ── Energy gauge ─────────────────────────────────────────────────────

def energy_status(active_mg: float, max_daily_mg: float = MAX_DAILY_AMOUNT_MG) -> dict:
    """
    Fill ratio of the active level against the gauge maximum (0-1)
    and a short human-readable label.
    """
    fill = 0.0
    if max_daily_mg > 0:
        fill = max(0.0, min(1.0, active_mg / max_daily_mg))

    if fill < 0.25:
        label = "Crash coming soon"
    elif fill < 0.5:
        label = "Energy fading"
    elif fill < 0.75:
        label = "Nicely energized"
    elif fill < 0.9:
        label = "Highly alert"
    else:
        label = "Approaching limit"

    return {"fill": round(fill, 3), "status": label}
