"""
Simulation helpers for the delivery dashboard.

- log_action: records a remediation against an alert and projects a
  synthetic next-week KPI value. This is a stand-in for a real feedback
  loop (interventions take a week to show) and is intentionally random.
- generate_delivery_records / generate_delivery_csv: synthetic order-level
  data for demos and smoke tests. All values are synthetic.
"""

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta

import numpy as np
import pandas as pd

from .config import KPI_REGISTRY, UNIT_CEILINGS
from .kpis import round_kpi_value
from .models import Alert, KpiDataPoint, KpiName, TrackedAction

logger = logging.getLogger(__name__)

# Unseeded: projected outcomes differ between runs unless a generator is passed in
_ACTION_RNG = np.random.default_rng()

# Uniform delta range per KPI; anything not listed is a percentage KPI
_IMPROVEMENT_RANGES: dict[KpiName, tuple[float, float]] = {
    KpiName.CUSTOMER_SATISFACTION: (0.1, 0.5),
    KpiName.AVERAGE_AGENT_RATING: (0.1, 0.5),
    KpiName.ORDER_PREP_TIME: (-3.0, -1.0),  # lower is better
}
_PERCENT_IMPROVEMENT = (1.0, 5.0)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def project_improved_value(
    kpi: KpiName,
    value: float,
    rng: np.random.Generator | None = None,
) -> float:
    """Apply a random improvement delta to a KPI value.

    The result is clamped to [0, ceiling] where the ceiling depends on the
    unit (100 for %, 5 for scores, none otherwise) and rounded to the KPI's
    precision.
    """
    rng = rng if rng is not None else _ACTION_RNG
    low, high = _IMPROVEMENT_RANGES.get(kpi, _PERCENT_IMPROVEMENT)
    delta = rng.uniform(low, high)

    new_value = value + delta
    ceiling = UNIT_CEILINGS.get(KPI_REGISTRY[kpi]["unit"])
    if ceiling is not None:
        new_value = min(ceiling, new_value)
    new_value = max(0.0, new_value)

    return round_kpi_value(kpi, new_value)


def log_action(
    data: list[KpiDataPoint],
    alert: Alert,
    action_taken: str,
    rng: np.random.Generator | None = None,
    now: datetime | None = None,
) -> tuple[list[KpiDataPoint], TrackedAction]:
    """Log a remediation action against an alert.

    Returns a new data list in which the same region/KPI point for the
    following week (if any) carries the projected value, plus the
    TrackedAction describing the change. The input list is not modified.
    """
    next_week = alert.week + 1
    new_value = project_improved_value(alert.kpi, alert.value, rng)

    updated = False
    new_data = []
    for point in data:
        if point.region == alert.region and point.kpi == alert.kpi and point.week == next_week:
            point = replace(point, value=new_value)
            updated = True
        new_data.append(point)

    if updated:
        outcome = f"{alert.kpi.value} improved in Week {next_week}."
    else:
        outcome = f"{alert.kpi.value} projected to improve in Week {next_week}."

    stamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    action = TrackedAction(
        identity=alert.identity,
        alert=alert,
        action_taken=action_taken,
        timestamp=stamp,
        outcome=outcome,
        previous_value=alert.value,
        new_value=new_value,
    )

    logger.info(
        "Logged action for %s: %.2f -> %.2f (week %d %s)",
        alert.identity, alert.value, new_value, next_week,
        "updated" if updated else "not in dataset",
    )
    return new_data, action


# ---------------------------------------------------------------------------
# Synthetic delivery data
# ---------------------------------------------------------------------------
# (latitude, longitude, mean delivery minutes, accuracy rate, mean prep minutes)
_STORE_PROFILES = [
    (40.71, -74.01, 95, 0.985, 12.0),    # New York
    (34.05, -118.24, 110, 0.970, 14.0),  # Los Angeles
    (-23.55, -46.63, 125, 0.950, 18.0),  # Sao Paulo
    (-34.60, -58.38, 115, 0.960, 16.0),  # Buenos Aires
    (51.51, -0.13, 90, 0.990, 11.0),     # London
    (48.86, 2.35, 100, 0.980, 13.0),     # Paris
    (1.35, 103.82, 105, 0.975, 15.0),    # Singapore
    (35.68, 139.69, 85, 0.995, 10.0),    # Tokyo
    (-1.29, 36.82, 130, 0.940, 20.0),    # Nairobi (unclassified)
]


def generate_delivery_records(
    n_orders: int = 1200,
    start: date = date(2024, 1, 1),
    n_weeks: int = 8,
    seed: int = 42,
) -> pd.DataFrame:
    """Generate order-level delivery data with every optional column.

    Returns
    -------
    DataFrame with columns:
        order_date, delivery_time, store_latitude, store_longitude,
        order_accurate, customer_satisfaction, agent_rating,
        order_time, pickup_time
    """
    rng = np.random.default_rng(seed)
    rows = []

    for _ in range(n_orders):
        lat, lon, mean_minutes, accuracy, mean_prep = _STORE_PROFILES[
            rng.integers(0, len(_STORE_PROFILES))
        ]
        order_day = start + timedelta(days=int(rng.integers(0, n_weeks * 7)))

        delivery_time = max(5, int(rng.normal(mean_minutes, 20)))
        late = delivery_time > 120
        satisfaction = int(np.clip(round(rng.normal(3.6 if late else 4.6, 0.6)), 1, 5))
        rating = round(float(np.clip(rng.normal(4.7, 0.25), 1.0, 5.0)), 1)

        order_minute = int(rng.integers(10 * 60, 21 * 60))
        prep = max(1, int(rng.normal(mean_prep, 4)))
        pickup_minute = min(order_minute + prep, 23 * 60 + 59)

        rows.append({
            "order_date": order_day.isoformat(),
            "delivery_time": delivery_time,
            "store_latitude": lat + round(float(rng.normal(0, 0.05)), 4),
            "store_longitude": lon + round(float(rng.normal(0, 0.05)), 4),
            "order_accurate": "TRUE" if rng.random() < accuracy else "FALSE",
            # roughly one order in five is not rated
            "customer_satisfaction": satisfaction if rng.random() > 0.2 else "",
            "agent_rating": rating if rng.random() > 0.2 else "",
            "order_time": f"{order_minute // 60:02d}:{order_minute % 60:02d}",
            "pickup_time": f"{pickup_minute // 60:02d}:{pickup_minute % 60:02d}",
        })

    df = pd.DataFrame(rows)
    logger.info("Generated %d synthetic delivery records over %d weeks", len(df), n_weeks)
    return df


def generate_delivery_csv(**kwargs) -> str:
    """generate_delivery_records rendered as CSV text with a header row."""
    return generate_delivery_records(**kwargs).to_csv(index=False)
