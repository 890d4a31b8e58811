"""
tests/test_kpis.py

Pytest unit tests for breach detection, alert derivation and RAG status.

Coverage
--------
- Breach direction and exact-target behaviour
- Alert identity format
- One alert per breaching point, in input order
- Suppression by tracked actions
- Monotonicity of breaches
- RAG classification
"""

from __future__ import annotations

import numpy as np
import pytest

from delivery_dashboard.kpis import (
    alert_identity,
    classify_kpi_point,
    classify_performance,
    detect_alerts,
    is_breach,
    round_kpi_value,
)
from delivery_dashboard.models import KpiDataPoint, KpiName, Region, TrackedAction


def point(
    value: float,
    week: int = 2,
    region: Region = Region.NORTH_AMERICA,
    kpi: KpiName = KpiName.ON_TIME_DELIVERY,
    target: float = 95.0,
) -> KpiDataPoint:
    return KpiDataPoint(week=week, region=region, kpi=kpi, value=value, target=target)


def tracked_for(identity: str) -> TrackedAction:
    alert = detect_alerts([point(80.0)], [])[0]
    return TrackedAction(
        identity=identity,
        alert=alert,
        action_taken="Escalate",
        timestamp="2024-01-15 09:00:00",
        outcome="On-Time Delivery improved in Week 3.",
        previous_value=80.0,
        new_value=83.0,
    )


# ---------------------------------------------------------------------------
# Breach rule
# ---------------------------------------------------------------------------


class TestIsBreach:
    @pytest.mark.parametrize(
        "value,target,direction,expected",
        [
            (94.9, 95.0, "higher_is_better", True),
            (95.0, 95.0, "higher_is_better", False),
            (99.0, 95.0, "higher_is_better", False),
            (15.1, 15.0, "lower_is_better", True),
            (15.0, 15.0, "lower_is_better", False),
            (9.0, 15.0, "lower_is_better", False),
        ],
    )
    def test_direction(self, value: float, target: float, direction: str, expected: bool) -> None:
        assert is_breach(value, target, direction) is expected

    @pytest.mark.parametrize("value", [94.0, 80.0, 50.0, 0.0])
    def test_worse_values_stay_breaching(self, value: float) -> None:
        assert is_breach(94.5, 95.0, "higher_is_better")
        assert is_breach(value, 95.0, "higher_is_better")

    @pytest.mark.parametrize("value", [15.5, 20.0, 60.0])
    def test_worse_values_stay_breaching_lower(self, value: float) -> None:
        assert is_breach(value, 15.0, "lower_is_better")


class TestRounding:
    def test_percent_one_decimal(self) -> None:
        assert round_kpi_value(KpiName.ON_TIME_DELIVERY, 33.3333) == 33.3

    def test_score_two_decimals(self) -> None:
        assert round_kpi_value(KpiName.CUSTOMER_SATISFACTION, 4.56789) == 4.57

    def test_percent_tie_rounds_up(self) -> None:
        assert round_kpi_value(KpiName.ON_TIME_DELIVERY, 1 / 16 * 100) == 6.3

    def test_score_tie_rounds_up(self) -> None:
        assert round_kpi_value(KpiName.CUSTOMER_SATISFACTION, 33 / 8) == 4.13

    def test_prep_time_tie_rounds_up(self) -> None:
        assert round_kpi_value(KpiName.ORDER_PREP_TIME, 12.25) == 12.3

    def test_accepts_numpy_floats(self) -> None:
        assert round_kpi_value(KpiName.ON_TIME_DELIVERY, np.float64(0.25) * 100) == 25.0


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------


class TestAlertIdentity:
    def test_format(self) -> None:
        assert alert_identity(KpiName.ON_TIME_DELIVERY, Region.EUROPE, 5) == "On-Time Delivery|Europe|5"

    def test_accepts_display_strings(self) -> None:
        assert alert_identity("Order Accuracy", "Asia-Pacific", 12) == "Order Accuracy|Asia-Pacific|12"


class TestDetectAlerts:
    def test_single_breach(self) -> None:
        alerts = detect_alerts([point(80.0)], [])
        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.identity == "On-Time Delivery|North America|2"
        assert alert.value == 80.0
        assert alert.target == 95.0

    def test_meeting_target_is_not_alerted(self) -> None:
        assert detect_alerts([point(95.0), point(99.0, week=3)], []) == []

    def test_lower_is_better_breach(self) -> None:
        data = [point(18.0, kpi=KpiName.ORDER_PREP_TIME, target=15.0)]
        alerts = detect_alerts(data, [])
        assert [a.kpi for a in alerts] == [KpiName.ORDER_PREP_TIME]

    def test_follows_input_order(self) -> None:
        data = [
            point(80.0, week=3),
            point(99.0, week=4),
            point(70.0, week=1, region=Region.EUROPE),
        ]
        alerts = detect_alerts(data, [])
        assert [(a.region, a.week) for a in alerts] == [
            (Region.NORTH_AMERICA, 3),
            (Region.EUROPE, 1),
        ]

    def test_tracked_action_suppresses_alert(self) -> None:
        data = [point(80.0), point(70.0, week=3)]
        alerts = detect_alerts(data, [tracked_for("On-Time Delivery|North America|2")])
        assert [a.week for a in alerts] == [3]

    def test_unrelated_action_does_not_suppress(self) -> None:
        alerts = detect_alerts([point(80.0)], [tracked_for("On-Time Delivery|Europe|2")])
        assert len(alerts) == 1

    def test_recomputed_each_call(self) -> None:
        data = [point(80.0)]
        assert detect_alerts(data, []) == detect_alerts(data, [])

    def test_empty_data(self) -> None:
        assert detect_alerts([], []) == []


# ---------------------------------------------------------------------------
# RAG classification
# ---------------------------------------------------------------------------


class TestClassifyPerformance:
    def test_higher_is_better_bands(self) -> None:
        assert classify_performance(100, 100, "higher_is_better") == "green"
        assert classify_performance(96, 100, "higher_is_better") == "amber"
        assert classify_performance(90, 100, "higher_is_better") == "red"

    def test_lower_is_better_bands(self) -> None:
        assert classify_performance(90, 100, "lower_is_better") == "green"
        assert classify_performance(104, 100, "lower_is_better") == "amber"
        assert classify_performance(110, 100, "lower_is_better") == "red"

    def test_missing_or_zero_budget_is_grey(self) -> None:
        assert classify_performance(float("nan"), 100, "higher_is_better") == "grey"
        assert classify_performance(50, 0, "higher_is_better") == "grey"

    def test_kpi_point_uses_registry_band(self) -> None:
        # On-Time Delivery amber band is 3% of target: 92.15 and above
        assert classify_kpi_point(point(93.0)) == "amber"
        assert classify_kpi_point(point(90.0)) == "red"
        assert classify_kpi_point(point(96.0)) == "green"

    def test_prep_time_point(self) -> None:
        prep = point(16.0, kpi=KpiName.ORDER_PREP_TIME, target=15.0)
        assert classify_kpi_point(prep) == "amber"
