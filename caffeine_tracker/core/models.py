"""
Domain types shared by the engine, the safety evaluator and the storage layer.

Records are immutable pydantic models: negative amounts or non-positive
weights are rejected at construction (ValidationError is a ValueError).
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from caffeine_tracker.config import (
    DEFAULT_HALF_LIFE,
    DEFAULT_WEIGHT_KG,
    DRINK_PRESETS,
    HIGH_SENSITIVITY_HALF_LIFE,
    LOW_SENSITIVITY_HALF_LIFE,
)


class SensitivityProfile(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def half_life_hours(self) -> float:
        return _HALF_LIVES[self]

    @property
    def display_name(self) -> str:
        return _DISPLAY[self][0]

    @property
    def description(self) -> str:
        return _DISPLAY[self][1]

    @classmethod
    def from_value(cls, value: str) -> "SensitivityProfile":
        """Case-insensitive lookup ("low", "LOW" -> LOW)."""
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown sensitivity: {value!r}") from None


_HALF_LIVES = {
    SensitivityProfile.LOW: LOW_SENSITIVITY_HALF_LIFE,
    SensitivityProfile.MEDIUM: DEFAULT_HALF_LIFE,
    SensitivityProfile.HIGH: HIGH_SENSITIVITY_HALF_LIFE,
}

_DISPLAY = {
    SensitivityProfile.LOW: (
        "Caffeine Veteran",
        "I can drink coffee at night and still sleep fine",
    ),
    SensitivityProfile.MEDIUM: (
        "Regular Coffee Drinker",
        "I avoid coffee after 2-3 PM",
    ),
    SensitivityProfile.HIGH: (
        "Caffeine Sensitive",
        "Even morning coffee can make me jittery",
    ),
}


class IntakeRecord(BaseModel):
    """A logged caffeine intake. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    drink_name: str
    caffeine_mg: float = Field(..., ge=0)
    timestamp: datetime
    user_id: Optional[int] = None

    @classmethod
    def from_row(cls, row: dict) -> "IntakeRecord":
        return cls(
            id=row.get("id"),
            drink_name=row.get("drink_name") or "",
            caffeine_mg=row["caffeine_mg"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            user_id=row.get("user_id"),
        )


class UserProfile(BaseModel):
    id: Optional[int] = None
    weight_kg: float = Field(DEFAULT_WEIGHT_KG, gt=0)
    sensitivity: SensitivityProfile = SensitivityProfile.MEDIUM
    is_onboarded: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "UserProfile":
        created = row.get("created_at")
        return cls(
            id=row.get("id"),
            weight_kg=row["weight_kg"],
            sensitivity=SensitivityProfile.from_value(row["sensitivity"]),
            is_onboarded=bool(row.get("is_onboarded")),
            created_at=datetime.fromisoformat(created) if created else None,
        )


class CaffeineLevelSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    active_mg: float


class DrinkPreset(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    caffeine_mg: float


PRESETS = [DrinkPreset(name=n, caffeine_mg=mg) for n, mg in DRINK_PRESETS]


def find_preset(name: str) -> Optional[DrinkPreset]:
    for preset in PRESETS:
        if preset.name.lower() == name.strip().lower():
            return preset
    return None
