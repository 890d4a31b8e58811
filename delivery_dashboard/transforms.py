"""
Data transforms: turn parsed delivery records into the weekly per-region
KPI fact table.
"""

import logging
from dataclasses import asdict, fields

import pandas as pd

from .config import KPI_REGISTRY, ON_TIME_DELIVERY_THRESHOLD_MINUTES
from .geo import classify_regions
from .kpis import round_kpi_value
from .models import KpiDataPoint, KpiName, RawDeliveryRecord, Region
from .weeks import iso_week_numbers

logger = logging.getLogger(__name__)

_RECORD_COLUMNS = [f.name for f in fields(RawDeliveryRecord)]
_POINT_COLUMNS = ["week", "region", "kpi", "value", "target"]


def records_to_frame(records: list[RawDeliveryRecord]) -> pd.DataFrame:
    """One row per record, columns named after RawDeliveryRecord fields."""
    if not records:
        return pd.DataFrame(columns=_RECORD_COLUMNS)
    return pd.DataFrame([asdict(r) for r in records], columns=_RECORD_COLUMNS)


def _prep_minutes(df: pd.DataFrame) -> pd.Series:
    """Minutes from order to pickup, both anchored to the order date.

    NaN unless both times are present, both parse, and pickup is strictly
    after the order.
    """
    has_times = (df["order_time"] != "") & (df["pickup_time"] != "")
    day = pd.to_datetime(df["order_date"]).dt.strftime("%Y-%m-%d")

    ordered = pd.to_datetime(day + " " + df["order_time"], errors="coerce", format="mixed")
    picked = pd.to_datetime(day + " " + df["pickup_time"], errors="coerce", format="mixed")

    unparsed = int((has_times & (ordered.isna() | picked.isna())).sum())
    if unparsed:
        logger.warning("Could not parse order/pickup time on %d records; skipped", unparsed)

    minutes = (picked - ordered).dt.total_seconds() / 60
    return minutes.where(has_times & (minutes > 0))


def aggregate_weekly_kpis(
    records: list[RawDeliveryRecord],
    available_kpis: list[KpiName],
) -> list[KpiDataPoint]:
    """Group records by (region, ISO week) and compute the enabled KPIs.

    Rules
    -----
    - Unclassified stores are dropped before grouping.
    - On-Time Delivery / Order Accuracy: share of orders (delivered within
      the threshold / flagged accurate), emitted for every group, 0% included.
    - Customer Satisfaction / Average Agent Rating: mean of scores > 0.
    - Order Prep Time: mean of positive order-to-pickup intervals (minutes).
    - Mean-based KPIs are omitted for groups with no qualifying samples.
    - Only KPIs in `available_kpis` are emitted.

    Returns
    -------
    KpiDataPoint list sorted by region, KPI name, then week.
    """
    enabled = set(available_kpis)
    df = records_to_frame(records)
    if df.empty:
        logger.warning("No records to aggregate")
        return []

    df["region"] = classify_regions(
        df["store_latitude"].astype(float), df["store_longitude"].astype(float)
    )
    unclassified = int((df["region"] == Region.UNCLASSIFIED).sum())
    if unclassified:
        logger.info("Excluded %d records outside classified regions", unclassified)

    df = df[df["region"] != Region.UNCLASSIFIED].copy()
    if df.empty:
        return []

    df["week"] = iso_week_numbers(df["order_date"])
    df["on_time"] = df["delivery_time"] <= ON_TIME_DELIVERY_THRESHOLD_MINUTES
    df["accurate"] = df["order_accurate"].astype(bool)
    df["satisfaction"] = df["customer_satisfaction"].where(df["customer_satisfaction"] > 0)
    df["rating"] = df["agent_rating"].where(df["agent_rating"] > 0)
    df["prep_minutes"] = _prep_minutes(df)

    grouped = df.groupby(["region", "week"], sort=False).agg(
        total_orders=("on_time", "size"),
        on_time_orders=("on_time", "sum"),
        accurate_orders=("accurate", "sum"),
        satisfaction_mean=("satisfaction", "mean"),
        satisfaction_count=("satisfaction", "count"),
        rating_mean=("rating", "mean"),
        rating_count=("rating", "count"),
        prep_mean=("prep_minutes", "mean"),
        prep_count=("prep_minutes", "count"),
    ).reset_index()

    points: list[KpiDataPoint] = []

    def emit(kpi: KpiName, week: int, region: Region, value: float) -> None:
        if kpi not in enabled:
            return
        points.append(KpiDataPoint(
            week=week,
            region=region,
            kpi=kpi,
            value=round_kpi_value(kpi, value),
            target=KPI_REGISTRY[kpi]["target"],
        ))

    for row in grouped.itertuples(index=False):
        region = Region(row.region)
        week = int(row.week)
        total = int(row.total_orders)
        if total == 0:
            continue

        emit(KpiName.ON_TIME_DELIVERY, week, region, row.on_time_orders / total * 100)
        emit(KpiName.ORDER_ACCURACY, week, region, row.accurate_orders / total * 100)
        if row.satisfaction_count > 0:
            emit(KpiName.CUSTOMER_SATISFACTION, week, region, row.satisfaction_mean)
        if row.rating_count > 0:
            emit(KpiName.AVERAGE_AGENT_RATING, week, region, row.rating_mean)
        if row.prep_count > 0:
            emit(KpiName.ORDER_PREP_TIME, week, region, row.prep_mean)

    points.sort(key=lambda p: (p.region.value, p.kpi.value, p.week))
    logger.info(
        "Built %d KPI data points from %d records (%d region-week groups)",
        len(points), len(df), len(grouped),
    )
    return points


def kpi_points_to_frame(points: list[KpiDataPoint]) -> pd.DataFrame:
    """Long-format frame (week, region, kpi, value, target) for charts/prompts.

    Region and KPI are stored as their display strings.
    """
    if not points:
        return pd.DataFrame(columns=_POINT_COLUMNS)
    return pd.DataFrame(
        [
            {
                "week": p.week,
                "region": p.region.value,
                "kpi": p.kpi.value,
                "value": p.value,
                "target": p.target,
            }
            for p in points
        ],
        columns=_POINT_COLUMNS,
    )
