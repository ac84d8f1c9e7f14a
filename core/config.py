"""Runtime configuration read from environment variables.

Values are resolved once at import time. Tunables that were picked by hand
(the grocery majority threshold and the child portion weight) live here so
they can be adjusted without code changes.
"""

import os


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    return int(value) if value not in (None, "") else default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    return float(value) if value not in (None, "") else default


# Database: in production, point WRITE/READ at primary and replica.
WRITE_DATABASE_URL = os.getenv("WRITE_DATABASE_URL", "sqlite:///mealplan.db")
READ_DATABASE_URL = os.getenv("READ_DATABASE_URL", WRITE_DATABASE_URL)

# Generative capability
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
GENERATION_MODEL = os.getenv("GENERATION_MODEL", "claude-sonnet-4-5-20250929")
GENERATION_MAX_TOKENS = _env_int("GENERATION_MAX_TOKENS", 16000)
GENERATION_MAX_RETRIES = _env_int("GENERATION_MAX_RETRIES", 1)

# Plan validation
MACRO_TOLERANCE = _env_float("MACRO_TOLERANCE", 1.0)

# Grocery aggregation and household scaling
AGGREGATION_MAJORITY_THRESHOLD = _env_float("AGGREGATION_MAJORITY_THRESHOLD", 0.6)
CHILD_PORTION_MULTIPLIER = _env_float("CHILD_PORTION_MULTIPLIER", 0.6)

# Jobs
JOB_STALE_AFTER_SECONDS = _env_int("JOB_STALE_AFTER_SECONDS", 900)
REGENERATE_DEBOUNCE_SECONDS = _env_int("REGENERATE_DEBOUNCE_SECONDS", 30)
