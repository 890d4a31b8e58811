"""
Dashboard-ready output functions.

These are the entry points for the Streamlit front end. Each function
returns plain dicts or DataFrames suitable for rendering cards, charts and
tables.
"""

import logging

import pandas as pd

from .config import KPI_REGISTRY
from .kpis import classify_kpi_point, classify_performance
from .models import Alert, KpiDataPoint, KpiName, Region, TrackedAction
from .state import SessionState
from .transforms import kpi_points_to_frame

logger = logging.getLogger(__name__)


def get_available_weeks(data: list[KpiDataPoint]) -> list[int]:
    """Distinct weeks in the dataset, latest first, for week pickers."""
    return sorted({p.week for p in data}, reverse=True)


def get_latest_kpi_value(
    data: list[KpiDataPoint],
    available_kpis: list[KpiName],
    kpi: KpiName,
) -> dict:
    """Average of a KPI across regions in the latest week of the dataset.

    The latest week is taken over all KPIs, so a KPI with no point in that
    week reports N/A.

    Returns
    -------
    {"value": "96.3%", "unit": "%"} or {"value": "N/A", "unit": ...}
    """
    unit = KPI_REGISTRY[kpi]["unit"]
    if not data or kpi not in available_kpis:
        return {"value": "N/A", "unit": unit}

    latest_week = max(p.week for p in data)
    latest = [p.value for p in data if p.week == latest_week and p.kpi == kpi]
    if not latest:
        return {"value": "N/A", "unit": unit}

    avg = sum(latest) / len(latest)
    suffix = "%" if unit == "%" else ""
    return {"value": f"{avg:.1f}{suffix}", "unit": unit}


def get_overall_metrics(state: SessionState) -> dict:
    """Values for the four metric cards at the top of the dashboard."""
    data = list(state.kpi_data)
    available = list(state.available_kpis)
    return {
        "selected_kpi": get_latest_kpi_value(data, available, state.selected_kpi),
        "agent_rating": get_latest_kpi_value(data, available, KpiName.AVERAGE_AGENT_RATING),
        "prep_time": get_latest_kpi_value(data, available, KpiName.ORDER_PREP_TIME),
        "open_alerts": str(len(state.alerts)),
    }


def get_kpi_series(
    data: list[KpiDataPoint],
    region: Region,
    kpi: KpiName,
) -> pd.DataFrame:
    """Weekly series for one region/KPI with RAG status, ordered by week.

    Returns
    -------
    DataFrame with columns: week, value, target, rag
    """
    points = [p for p in data if p.region == region and p.kpi == kpi]
    if not points:
        logger.debug("No %s data for %s", kpi.value, region.value)
        return pd.DataFrame(columns=["week", "value", "target", "rag"])

    df = kpi_points_to_frame(points)[["week", "value", "target"]].copy()
    df["rag"] = [classify_kpi_point(p) for p in points]
    return df.sort_values("week").reset_index(drop=True)


def get_alerts_table(alerts: list[Alert]) -> pd.DataFrame:
    """Open alerts with RAG severity and signed variance against target.

    Returns
    -------
    DataFrame with columns:
        identity, region, week, kpi, value, target, variance, rag
    """
    columns = ["identity", "region", "week", "kpi", "value", "target", "variance", "rag"]
    if not alerts:
        return pd.DataFrame(columns=columns)

    rows = []
    for alert in alerts:
        registry = KPI_REGISTRY[alert.kpi]
        rows.append({
            "identity": alert.identity,
            "region": alert.region.value,
            "week": alert.week,
            "kpi": alert.kpi.value,
            "value": alert.value,
            "target": alert.target,
            "variance": round(alert.value - alert.target, 2),
            "rag": classify_performance(
                alert.value, alert.target, registry["direction"], registry["amber_band"]
            ),
        })
    return pd.DataFrame(rows, columns=columns)


def get_action_log_table(actions: list[TrackedAction]) -> pd.DataFrame:
    """Tracked actions, newest first, for the action tracker table.

    `improved` is judged against the KPI's direction, so a lower prep time
    counts as an improvement.
    """
    columns = [
        "region", "week", "kpi", "action_taken", "previous_value",
        "new_value", "improved", "outcome", "timestamp",
    ]
    if not actions:
        return pd.DataFrame(columns=columns)

    rows = []
    for action in actions:
        direction = KPI_REGISTRY[action.alert.kpi]["direction"]
        if direction == "higher_is_better":
            improved = action.new_value > action.previous_value
        else:
            improved = action.new_value < action.previous_value
        rows.append({
            "region": action.alert.region.value,
            "week": action.alert.week,
            "kpi": action.alert.kpi.value,
            "action_taken": action.action_taken,
            "previous_value": action.previous_value,
            "new_value": action.new_value,
            "improved": improved,
            "outcome": action.outcome,
            "timestamp": action.timestamp,
        })
    return pd.DataFrame(rows, columns=columns)
