import pytest

from caffeine_tracker.core.safety import (
    SafetyTier,
    daily_limit,
    danger_level,
    evaluate_daily_status,
    evaluate_planned_intake,
    evaluate_safety,
    is_dangerous,
    warning_level,
)


def test_limits_scale_with_weight():
    assert daily_limit(70) == pytest.approx(399.0)
    assert warning_level(70) == pytest.approx(315.0)
    assert danger_level(70) == pytest.approx(1050.0)
    assert daily_limit(100) > daily_limit(50)


@pytest.mark.parametrize("weight", [0, -70])
def test_non_positive_weight_is_rejected(weight):
    with pytest.raises(ValueError):
        daily_limit(weight)
    with pytest.raises(ValueError):
        evaluate_safety(50, 100, weight)


def test_below_warning_level_is_silent():
    assert evaluate_safety(50, 280, 70) is None
    assert evaluate_planned_intake(95, 95, 70) is None


def test_approaching_limit():
    result = evaluate_safety(50, 330, 70)
    assert result.tier is SafetyTier.APPROACHING
    assert result.remaining_mg == 69
    assert result.message == "That brings you to 330mg of 399mg today (69mg left)."


def test_planned_intake_over_limit():
    """320mg already today plus an 80mg coffee crosses the 399mg limit."""
    result = evaluate_planned_intake(80, 320, 70)
    assert result.tier is SafetyTier.OVER_LIMIT
    assert result.title == "Over Daily Limit"
    assert result.total_mg == 400
    assert result.remaining_mg == 0
    assert "(limit: 399mg)" in result.message


def test_high_single_dose_under_limit():
    result = evaluate_safety(220, 200, 70)
    assert result.tier is SafetyTier.HIGH_SINGLE_DOSE
    assert result.message.startswith("220mg is a strong dose")


def test_danger_wins_over_other_tiers():
    result = evaluate_safety(300, 1100, 70)
    assert result.tier is SafetyTier.DANGER
    assert "1100mg" in result.message
    assert is_dangerous(1100, 70)
    assert not is_dangerous(1000, 70)


def test_over_limit_beats_high_single_dose():
    assert evaluate_safety(250, 450, 70).tier is SafetyTier.OVER_LIMIT


def test_heavier_user_gets_no_warning_for_same_amount():
    assert evaluate_safety(50, 350, 70) is not None
    assert evaluate_safety(50, 350, 100) is None


def test_negative_amounts_are_rejected():
    with pytest.raises(ValueError):
        evaluate_safety(-1, 100, 70)
    with pytest.raises(ValueError):
        evaluate_planned_intake(50, -10, 70)


def test_daily_status_uses_active_level_as_dose():
    assert evaluate_daily_status(180, 90, 70) is None
    result = evaluate_daily_status(420, 130, 70)
    assert result.tier is SafetyTier.OVER_LIMIT
    assert result.single_dose_mg == 130


def test_assessment_serializes_tier_value():
    data = evaluate_safety(50, 330, 70).model_dump(mode="json")
    assert data["tier"] == "approaching"
    assert data["daily_limit_mg"] == 399.0
