"""
Caffeine Tracker Configuration.
All settings via environment variables with sensible defaults.
"""

import os
from pathlib import Path

# --- Paths ---
BASE_DIR = Path(os.getenv("CAFFEINE_DATA_DIR", "/data"))
DB_PATH = BASE_DIR / "caffeine.db"

# --- Auth ---
API_KEY = os.getenv("CAFFEINE_API_KEY", "")

# --- Dashboard ---
API_URL = os.getenv("CAFFEINE_API_URL", "http://localhost:8000")

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# --- User defaults (used until onboarding sets real values) ---
DEFAULT_WEIGHT_KG: float = float(os.getenv("DEFAULT_WEIGHT_KG", "70"))
DEFAULT_SENSITIVITY = os.getenv("DEFAULT_SENSITIVITY", "MEDIUM")

# --- Elimination half-lives (hours) per sensitivity ---
# Single-compartment first-order elimination, CYP1A2 t1/2 ~4-6h
LOW_SENSITIVITY_HALF_LIFE: float = 6.0
DEFAULT_HALF_LIFE: float = 5.0
HIGH_SENSITIVITY_HALF_LIFE: float = 4.0

# --- Crash prediction ---
CRASH_THRESHOLD_PERCENTAGE = float(os.getenv("CRASH_THRESHOLD_PERCENTAGE", "0.25"))
CRASH_MINIMUM_LEVEL_MG = float(os.getenv("CRASH_MINIMUM_LEVEL_MG", "40.0"))
CRASH_SEARCH_HORIZON_HOURS = float(os.getenv("CRASH_SEARCH_HORIZON_HOURS", "24"))
CRASH_NOTIFICATION_MINUTES = int(os.getenv("CRASH_NOTIFICATION_MINUTES", "30"))
PEAK_WINDOW_HOURS = 24
PEAK_SAMPLE_MINUTES = 5
CRASH_SAMPLE_MINUTES = 1
CHART_SAMPLE_MINUTES = 15
RECENT_WINDOW_HOURS = 24

# --- Safety thresholds (mg per kg body weight) ---
SAFE_DAILY_MG_PER_KG: float = 5.7     # ~400mg for 70kg
WARNING_MG_PER_KG: float = 4.5        # ~315mg for 70kg
DANGER_MG_PER_KG: float = 150.0       # LD50 approximation
DANGER_FRACTION: float = 0.1          # alert at 10% of LD50
MAX_SINGLE_DOSE_MG: float = 200.0     # FDA recommendation

# --- Display ---
MAX_DAILY_AMOUNT_MG = float(os.getenv("MAX_DAILY_AMOUNT_MG", "400"))  # gauge fallback when no weight is known
STATS_WINDOW_DAYS = 30

# --- Entitlements ---
FREE_HISTORY_DAYS = int(os.getenv("FREE_HISTORY_DAYS", "7"))

# --- Drink presets (name, mg) ---
DRINK_PRESETS = [
    ("Coffee (8oz)", 95.0),
    ("Espresso Shot", 63.0),
    ("Black Tea", 47.0),
    ("Green Tea", 28.0),
    ("Energy Drink", 80.0),
    ("Soda (12oz)", 35.0),
]
