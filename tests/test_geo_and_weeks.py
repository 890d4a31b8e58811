"""
tests/test_geo_and_weeks.py

Pytest unit tests for region classification and ISO week numbering.

Coverage
--------
- One store per region plus unclassified coordinates
- Strict inequalities at box edges
- Vectorised classifier agrees with the scalar one
- ISO weeks across year boundaries
- Vectorised week numbering agrees with the scalar one
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pandas as pd
import pytest

from delivery_dashboard.geo import classify_region, classify_regions
from delivery_dashboard.models import Region
from delivery_dashboard.weeks import iso_week_number, iso_week_numbers

CITIES = [
    (40.71, -74.01, Region.NORTH_AMERICA),   # New York
    (-23.55, -46.63, Region.SOUTH_AMERICA),  # Sao Paulo
    (51.51, -0.13, Region.EUROPE),           # London
    (35.68, 139.69, Region.ASIA_PACIFIC),    # Tokyo
    (1.35, 103.82, Region.ASIA_PACIFIC),     # Singapore
    (0.0, 0.0, Region.UNCLASSIFIED),         # Gulf of Guinea
    (-1.29, 36.82, Region.UNCLASSIFIED),     # Nairobi
    (-33.87, 151.21, Region.UNCLASSIFIED),   # Sydney sits south of the Asia-Pacific box
]


# ---------------------------------------------------------------------------
# Region classification
# ---------------------------------------------------------------------------


class TestClassifyRegion:
    @pytest.mark.parametrize("lat,lon,expected", CITIES)
    def test_known_locations(self, lat: float, lon: float, expected: Region) -> None:
        assert classify_region(lat, lon) is expected

    @pytest.mark.parametrize(
        "lat,lon",
        [
            (25.0, -74.0),   # latitude must exceed 25 for North America
            (35.0, 10.0),    # latitude must exceed 35 for Europe
            (50.0, -10.0),   # Europe excludes longitude -10
            (20.0, 40.0),    # longitude must exceed 40 for Asia-Pacific
            (-10.0, 100.0),  # latitude must exceed -10 for Asia-Pacific
        ],
    )
    def test_box_edges_are_exclusive(self, lat: float, lon: float) -> None:
        assert classify_region(lat, lon) is Region.UNCLASSIFIED

    def test_south_america_upper_edge(self) -> None:
        assert classify_region(9.99, -60.0) is Region.SOUTH_AMERICA
        assert classify_region(10.0, -60.0) is Region.UNCLASSIFIED

    def test_tracked_regions_exclude_unclassified(self) -> None:
        assert Region.UNCLASSIFIED not in Region.tracked()
        assert len(Region.tracked()) == 4


class TestClassifyRegionsVectorised:
    def test_matches_scalar(self) -> None:
        lat = pd.Series([c[0] for c in CITIES])
        lon = pd.Series([c[1] for c in CITIES])
        result = classify_regions(lat, lon)
        assert list(result) == [c[2] for c in CITIES]

    def test_returns_region_members(self) -> None:
        result = classify_regions(pd.Series([40.7]), pd.Series([-74.0]))
        assert isinstance(result.iloc[0], Region)

    def test_preserves_index(self) -> None:
        lat = pd.Series([40.7, 0.0], index=[10, 20])
        lon = pd.Series([-74.0, 0.0], index=[10, 20])
        assert list(classify_regions(lat, lon).index) == [10, 20]


# ---------------------------------------------------------------------------
# ISO weeks
# ---------------------------------------------------------------------------


class TestIsoWeekNumber:
    @pytest.mark.parametrize(
        "day,expected",
        [
            (date(2024, 1, 8), 2),
            (date(2024, 12, 30), 1),   # belongs to 2025-W01
            (date(2021, 1, 1), 53),    # belongs to 2020-W53
            (date(2023, 1, 1), 52),    # Sunday, belongs to 2022-W52
            (date(2020, 12, 31), 53),
            (date(2024, 1, 1), 1),
        ],
    )
    def test_year_boundaries(self, day: date, expected: int) -> None:
        assert iso_week_number(day) == expected

    def test_accepts_datetime_and_timestamp(self) -> None:
        assert iso_week_number(datetime(2024, 1, 8, 23, 30)) == 2
        assert iso_week_number(pd.Timestamp("2024-01-08")) == 2

    def test_matches_isocalendar_for_a_full_year(self) -> None:
        start = date(2020, 12, 20)
        for offset in range(400):
            day = start + timedelta(days=offset)
            assert iso_week_number(day) == day.isocalendar()[1]


class TestIsoWeekNumbersVectorised:
    def test_matches_scalar(self) -> None:
        days = [date(2024, 1, 8), date(2024, 12, 30), date(2021, 1, 1)]
        result = iso_week_numbers(pd.Series(days))
        assert list(result) == [iso_week_number(d) for d in days]

    def test_integer_dtype(self) -> None:
        result = iso_week_numbers(pd.Series([date(2024, 1, 8)]))
        assert result.dtype == "int64"
