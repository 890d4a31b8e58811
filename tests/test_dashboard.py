"""
tests/test_dashboard.py

Pytest unit tests for the dashboard output functions.

Coverage
--------
- Week picker ordering
- Latest-week metric cards and N/A handling
- Region/KPI series with RAG status
- Alerts and action log tables
"""

from __future__ import annotations

from datetime import datetime

import numpy as np
import pytest

from delivery_dashboard.dashboard import (
    get_action_log_table,
    get_alerts_table,
    get_available_weeks,
    get_kpi_series,
    get_latest_kpi_value,
    get_overall_metrics,
)
from delivery_dashboard.kpis import detect_alerts
from delivery_dashboard.models import KpiDataPoint, KpiName, Region
from delivery_dashboard.simulator import log_action
from delivery_dashboard.state import SessionState

OTD = KpiName.ON_TIME_DELIVERY
PREP = KpiName.ORDER_PREP_TIME


def p(week: int, region: Region, kpi: KpiName, value: float) -> KpiDataPoint:
    target = 15.0 if kpi is PREP else 95.0
    return KpiDataPoint(week=week, region=region, kpi=kpi, value=value, target=target)


@pytest.fixture()
def data() -> list[KpiDataPoint]:
    return [
        p(4, Region.EUROPE, OTD, 97.0),
        p(5, Region.EUROPE, OTD, 93.0),
        p(3, Region.NORTH_AMERICA, OTD, 80.0),
        p(5, Region.NORTH_AMERICA, OTD, 96.0),
        p(4, Region.NORTH_AMERICA, PREP, 18.0),
    ]


# ---------------------------------------------------------------------------
# Weeks and cards
# ---------------------------------------------------------------------------


class TestWeeks:
    def test_latest_first_and_distinct(self, data) -> None:
        assert get_available_weeks(data) == [5, 4, 3]

    def test_empty(self) -> None:
        assert get_available_weeks([]) == []


class TestLatestKpiValue:
    def test_average_across_regions(self, data) -> None:
        result = get_latest_kpi_value(data, [OTD, PREP], OTD)
        assert result == {"value": "94.5%", "unit": "%"}

    def test_no_point_in_latest_week(self, data) -> None:
        result = get_latest_kpi_value(data, [OTD, PREP], PREP)
        assert result == {"value": "N/A", "unit": "min"}

    def test_unavailable_kpi(self, data) -> None:
        result = get_latest_kpi_value(data, [OTD], KpiName.AVERAGE_AGENT_RATING)
        assert result == {"value": "N/A", "unit": "score"}

    def test_no_data(self) -> None:
        assert get_latest_kpi_value([], [OTD], OTD)["value"] == "N/A"

    def test_non_percent_has_no_suffix(self) -> None:
        data = [p(2, Region.EUROPE, PREP, 12.25), p(2, Region.NORTH_AMERICA, PREP, 13.0)]
        assert get_latest_kpi_value(data, [OTD, PREP], PREP)["value"] == "12.6"


class TestOverallMetrics:
    def test_cards(self, data) -> None:
        state = SessionState(kpi_data=tuple(data), available_kpis=(OTD, PREP))
        metrics = get_overall_metrics(state)
        assert metrics["selected_kpi"]["value"] == "94.5%"
        assert metrics["agent_rating"]["value"] == "N/A"
        assert metrics["prep_time"]["value"] == "N/A"
        assert metrics["open_alerts"] == "3"

    def test_empty_state(self) -> None:
        metrics = get_overall_metrics(SessionState())
        assert metrics["selected_kpi"]["value"] == "N/A"
        assert metrics["open_alerts"] == "0"


# ---------------------------------------------------------------------------
# Series and tables
# ---------------------------------------------------------------------------


class TestKpiSeries:
    def test_filtered_and_sorted(self, data) -> None:
        df = get_kpi_series(data, Region.EUROPE, OTD)
        assert list(df["week"]) == [4, 5]
        assert list(df["value"]) == [97.0, 93.0]
        assert list(df["rag"]) == ["green", "amber"]

    def test_no_points(self, data) -> None:
        df = get_kpi_series(data, Region.ASIA_PACIFIC, OTD)
        assert df.empty
        assert list(df.columns) == ["week", "value", "target", "rag"]


class TestAlertsTable:
    def test_rows(self, data) -> None:
        df = get_alerts_table(detect_alerts(data, []))
        assert len(df) == 3
        row = df[df["kpi"] == "Order Prep Time"].iloc[0]
        assert row["variance"] == pytest.approx(3.0)
        assert row["rag"] == "red"

    def test_empty(self) -> None:
        assert get_alerts_table([]).empty


class TestActionLogTable:
    def _action(self, data, kpi: KpiName):
        alert = [a for a in detect_alerts(data, []) if a.kpi is kpi][0]
        _, action = log_action(
            data, alert, "Add a prep station", rng=np.random.default_rng(0),
            now=datetime(2024, 2, 1, 8, 0, 0),
        )
        return action

    def test_prep_time_drop_counts_as_improvement(self, data) -> None:
        df = get_action_log_table([self._action(data, PREP)])
        assert bool(df.iloc[0]["improved"]) is True
        assert df.iloc[0]["new_value"] < df.iloc[0]["previous_value"]

    def test_percentage_rise_counts_as_improvement(self, data) -> None:
        df = get_action_log_table([self._action(data, OTD)])
        assert bool(df.iloc[0]["improved"]) is True

    def test_keeps_given_order(self, data) -> None:
        actions = [self._action(data, PREP), self._action(data, OTD)]
        df = get_action_log_table(actions)
        assert list(df["kpi"]) == ["Order Prep Time", "On-Time Delivery"]

    def test_empty(self) -> None:
        assert get_action_log_table([]).empty
