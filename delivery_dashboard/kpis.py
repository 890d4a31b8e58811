"""
KPI computation functions: pure functions with no side effects.

Provides value rounding, breach detection, alert derivation and RAG
classification.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

import pandas as pd

from .config import KPI_REGISTRY
from .models import Alert, KpiDataPoint, KpiName, Region, TrackedAction

logger = logging.getLogger(__name__)


def round_kpi_value(kpi: KpiName, value: float) -> float:
    """Round to the KPI's fixed precision (1 dp for %/time, 2 dp for scores).

    Ties round half away from zero on the shortest decimal form of the
    value, so 6.25 -> 6.3 and 4.125 -> 4.13.
    """
    step = Decimal(10) ** -KPI_REGISTRY[kpi]["precision"]
    return float(Decimal(repr(float(value))).quantize(step, rounding=ROUND_HALF_UP))


def is_breach(value: float, target: float, direction: str) -> bool:
    """True when value sits on the wrong side of target.

    Meeting the target exactly is never a breach.
    """
    if direction == "higher_is_better":
        return value < target
    return value > target


def alert_identity(kpi: KpiName, region: Region, week: int) -> str:
    """Composite key shared by an Alert and any TrackedAction resolving it."""
    return f"{KpiName(kpi).value}|{Region(region).value}|{int(week)}"


def detect_alerts(
    data: list[KpiDataPoint],
    tracked_actions: list[TrackedAction],
) -> list[Alert]:
    """Derive the open alert set from the current data and action log.

    Every breaching data point becomes an Alert unless a tracked action
    already carries its identity. Output follows the order of `data`.
    This is recomputed from scratch on each call; nothing is cached.
    """
    resolved = {action.identity for action in tracked_actions}
    alerts = []

    for point in data:
        direction = KPI_REGISTRY[point.kpi]["direction"]
        if not is_breach(point.value, point.target, direction):
            continue
        identity = alert_identity(point.kpi, point.region, point.week)
        if identity in resolved:
            continue
        alerts.append(Alert(
            identity=identity,
            week=point.week,
            region=point.region,
            kpi=point.kpi,
            value=point.value,
            target=point.target,
        ))

    logger.debug(
        "Detected %d open alerts (%d suppressed by tracked actions)",
        len(alerts), len(resolved),
    )
    return alerts


def classify_performance(
    actual: float,
    budget: float,
    direction: str,
    amber_band_pct: float = 5.0,
) -> str:
    """Return 'green', 'amber', 'red' or 'grey' RAG classification.

    Logic
    -----
    - direction='higher_is_better':
        green  if actual >= budget
        amber  if actual >= budget * (1 - amber_band_pct/100)
        red    otherwise

    - direction='lower_is_better':
        green  if actual <= budget
        amber  if actual <= budget * (1 + amber_band_pct/100)
        red    otherwise

    grey when either value is missing or the budget is zero.
    """
    if pd.isna(actual) or pd.isna(budget):
        return "grey"

    if budget == 0:
        return "grey"

    if direction == "higher_is_better":
        if actual >= budget:
            return "green"
        threshold = budget * (1 - amber_band_pct / 100)
        if actual >= threshold:
            return "amber"
        return "red"
    else:  # lower_is_better
        if actual <= budget:
            return "green"
        threshold = budget * (1 + amber_band_pct / 100)
        if actual <= threshold:
            return "amber"
        return "red"


def classify_kpi_point(point: KpiDataPoint) -> str:
    """RAG status of a data point using its KPI's registry settings."""
    registry = KPI_REGISTRY[point.kpi]
    return classify_performance(
        point.value, point.target, registry["direction"], registry["amber_band"]
    )
