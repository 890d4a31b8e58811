"""
Configuration: KPI registry, CSV column names, provider settings, constants.

KPI_REGISTRY maps each KPI to its evaluation direction, display unit,
target, rounding precision and amber-band tolerance (percentage points).
"""

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv

from .models import KpiName, Region

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Application identity
# ---------------------------------------------------------------------------
APP_TITLE = "Delivery Performance Monitor"

# ---------------------------------------------------------------------------
# KPI Registry
# ---------------------------------------------------------------------------
# direction: "higher_is_better" or "lower_is_better"
# unit: "%" (clamped to 0-100), "score" (clamped to 0-5) or a free unit
# precision: decimals kept when a value is computed
# amber_band: percentage-point tolerance for amber classification
KPI_REGISTRY: dict[KpiName, dict] = {
    KpiName.ON_TIME_DELIVERY: {
        "direction": "higher_is_better",
        "unit": "%",
        "target": 95.0,
        "precision": 1,
        "amber_band": 3.0,
    },
    KpiName.ORDER_ACCURACY: {
        "direction": "higher_is_better",
        "unit": "%",
        "target": 98.0,
        "precision": 1,
        "amber_band": 2.0,
    },
    KpiName.CUSTOMER_SATISFACTION: {
        "direction": "higher_is_better",
        "unit": "score",
        "target": 4.5,
        "precision": 2,
        "amber_band": 5.0,
    },
    KpiName.AVERAGE_AGENT_RATING: {
        "direction": "higher_is_better",
        "unit": "score",
        "target": 4.7,
        "precision": 2,
        "amber_band": 5.0,
    },
    KpiName.ORDER_PREP_TIME: {
        "direction": "lower_is_better",
        "unit": "min",
        "target": 15.0,
        "precision": 1,
        "amber_band": 10.0,
    },
}

# Upper clamp per unit for simulated outcomes; units not listed are unbounded.
UNIT_CEILINGS: dict[str, float] = {
    "%": 100.0,
    "score": 5.0,
}

REGIONS: list[Region] = Region.tracked()

# ---------------------------------------------------------------------------
# CSV ingestion
# ---------------------------------------------------------------------------
ON_TIME_DELIVERY_THRESHOLD_MINUTES = 120

REQUIRED_HEADERS = ("order_date", "delivery_time", "store_latitude", "store_longitude")

# Optional KPI -> headers that must all be present for it to be computable
OPTIONAL_KPI_HEADERS: dict[KpiName, tuple[str, ...]] = {
    KpiName.ORDER_ACCURACY: ("order_accurate",),
    KpiName.CUSTOMER_SATISFACTION: ("customer_satisfaction",),
    KpiName.AVERAGE_AGENT_RATING: ("agent_rating",),
    KpiName.ORDER_PREP_TIME: ("order_time", "pickup_time"),
}

SCORE_RANGE = (1, 5)

# ---------------------------------------------------------------------------
# Text-completion provider
# ---------------------------------------------------------------------------
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "API_KEY")

FALLBACK_RECOMMENDATIONS = (
    "Error: Could not retrieve AI recommendations.",
    "Suggestion: Manually review carrier performance.",
    "Suggestion: Check for regional disruptions or events.",
)
NO_DATA_MESSAGE = (
    "No data loaded yet. Please upload a delivery data CSV file before asking questions."
)
INSIGHT_ERROR_MESSAGE = "Sorry, I encountered an error. Please try again."
BRIEF_ERROR_MESSAGE = "Unable to generate the executive brief right now. Please try again later."

EXAMPLE_PROMPTS = (
    "Identify top 3 delivery zones causing delays this quarter.",
    "Recommend ops actions to improve route efficiency.",
    "Show task success rate trend and anomaly alerts.",
    "Which region had the best On-Time Delivery in the most recent week?",
)


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """Load a project .env file once before reading provider settings."""
    load_dotenv()


def get_api_key() -> str | None:
    """Return the first configured provider API key, or None."""
    _load_env_once()
    for name in API_KEY_ENV_VARS:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    logger.debug("No provider API key set in %s", ", ".join(API_KEY_ENV_VARS))
    return None


def get_model_name() -> str:
    _load_env_once()
    return os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL)
