"""
Safety evaluator: classifies caffeine consumption against body-weight
scaled limits.

Thresholds (w = body weight in kg):
  daily_limit   = w * 5.7    (~400mg at 70kg)
  warning_level = w * 4.5    (~315mg at 70kg)
  danger_level  = w * 150 * 0.1   (10% of an LD50 approximation)

Tier order, first match wins, against the resulting total:
  1. danger            total > danger_level
  2. over_limit        total > daily_limit
  3. high_single_dose  single dose > 200mg
  4. approaching       otherwise, but only when total > warning_level
                       or single dose > 200mg; silent below that.

Operates on raw summed milligrams, not on decayed active caffeine.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from caffeine_tracker.config import (
    DANGER_FRACTION,
    DANGER_MG_PER_KG,
    MAX_SINGLE_DOSE_MG,
    SAFE_DAILY_MG_PER_KG,
    WARNING_MG_PER_KG,
)


class SafetyTier(str, Enum):
    APPROACHING = "approaching"
    OVER_LIMIT = "over_limit"
    HIGH_SINGLE_DOSE = "high_single_dose"
    DANGER = "danger"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    SafetyTier.APPROACHING: "Nearing Daily Limit",
    SafetyTier.OVER_LIMIT: "Over Daily Limit",
    SafetyTier.HIGH_SINGLE_DOSE: "Strong Dose",
    SafetyTier.DANGER: "Very High Amount",
}


class SafetyAssessment(BaseModel):
    tier: SafetyTier
    title: str
    message: str
    total_mg: float
    single_dose_mg: float
    daily_limit_mg: float
    remaining_mg: float


# ── Weight-scaled limits ─────────────────────────────────────────────

def _check_weight(weight_kg: float) -> None:
    if weight_kg <= 0:
        raise ValueError(f"weight_kg must be > 0, got {weight_kg}")


def daily_limit(weight_kg: float) -> float:
    _check_weight(weight_kg)
    return weight_kg * SAFE_DAILY_MG_PER_KG


def warning_level(weight_kg: float) -> float:
    _check_weight(weight_kg)
    return weight_kg * WARNING_MG_PER_KG


def danger_level(weight_kg: float) -> float:
    _check_weight(weight_kg)
    return weight_kg * DANGER_MG_PER_KG * DANGER_FRACTION


def is_dangerous(amount_mg: float, weight_kg: float) -> bool:
    return amount_mg > danger_level(weight_kg)


# ── Evaluation ───────────────────────────────────────────────────────

def evaluate_safety(
    single_dose_mg: float,
    total_mg: float,
    weight_kg: float,
) -> Optional[SafetyAssessment]:
    """
    Classify a resulting daily total plus the single dose that produced it.
    Returns None when no warning should be shown.
    """
    if single_dose_mg < 0 or total_mg < 0:
        raise ValueError("caffeine amounts must be >= 0")

    limit = daily_limit(weight_kg)
    show = total_mg > warning_level(weight_kg) or single_dose_mg > MAX_SINGLE_DOSE_MG
    if not show:
        return None

    if total_mg > danger_level(weight_kg):
        tier = SafetyTier.DANGER
    elif total_mg > limit:
        tier = SafetyTier.OVER_LIMIT
    elif single_dose_mg > MAX_SINGLE_DOSE_MG:
        tier = SafetyTier.HIGH_SINGLE_DOSE
    else:
        tier = SafetyTier.APPROACHING

    remaining = max(0, int(limit) - int(total_mg))
    return SafetyAssessment(
        tier=tier,
        title=tier.label,
        message=_message(tier, total_mg, single_dose_mg, limit, remaining),
        total_mg=round(total_mg, 1),
        single_dose_mg=round(single_dose_mg, 1),
        daily_limit_mg=round(limit, 1),
        remaining_mg=remaining,
    )


def _message(tier: SafetyTier, total: float, single: float,
             limit: float, remaining: int) -> str:
    if tier is SafetyTier.DANGER:
        return (
            f"That puts you at {int(total)}mg today. "
            "That's quite a lot! Consider stopping for today."
        )
    if tier is SafetyTier.OVER_LIMIT:
        return f"That brings you to {int(total)}mg today (limit: {int(limit)}mg)."
    if tier is SafetyTier.HIGH_SINGLE_DOSE:
        return (
            f"{int(single)}mg is a strong dose. You might feel jittery. "
            "Stay hydrated and monitor how you feel."
        )
    return f"That brings you to {int(total)}mg of {int(limit)}mg today ({remaining}mg left)."


def evaluate_planned_intake(
    planned_mg: float,
    current_total_mg: float,
    weight_kg: float,
) -> Optional[SafetyAssessment]:
    """Check before logging: the planned dose is added to today's total."""
    if planned_mg < 0 or current_total_mg < 0:
        raise ValueError("caffeine amounts must be >= 0")
    return evaluate_safety(planned_mg, current_total_mg + planned_mg, weight_kg)


def evaluate_daily_status(
    total_today_mg: float,
    current_level_mg: float,
    weight_kg: float,
) -> Optional[SafetyAssessment]:
    """Dashboard check: today's total with the current active level as the dose."""
    return evaluate_safety(current_level_mg, total_today_mg, weight_kg)
