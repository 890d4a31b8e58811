"""
Domain types shared by the ingestion, aggregation and alerting pipeline.

Records, data points, alerts and tracked actions are frozen dataclasses:
every state change in the session produces new instances rather than
mutating existing ones.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum


class Region(str, Enum):
    NORTH_AMERICA = "North America"
    SOUTH_AMERICA = "South America"
    EUROPE = "Europe"
    ASIA_PACIFIC = "Asia-Pacific"
    UNCLASSIFIED = "Unclassified"

    @classmethod
    def tracked(cls) -> list["Region"]:
        """Regions that can appear in aggregated KPI data."""
        return [r for r in cls if r is not cls.UNCLASSIFIED]

    def __str__(self) -> str:
        return self.value


class KpiName(str, Enum):
    ON_TIME_DELIVERY = "On-Time Delivery"
    ORDER_ACCURACY = "Order Accuracy"
    CUSTOMER_SATISFACTION = "Customer Satisfaction"
    AVERAGE_AGENT_RATING = "Average Agent Rating"
    ORDER_PREP_TIME = "Order Prep Time"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RawDeliveryRecord:
    """One validated CSV row.

    Optional columns use "absent" sentinels: False for order_accurate,
    0 for customer_satisfaction and agent_rating, "" for the time strings.
    """

    order_date: date
    delivery_time: int
    store_latitude: float
    store_longitude: float
    order_accurate: bool = False
    customer_satisfaction: int = 0
    agent_rating: float = 0.0
    order_time: str = ""
    pickup_time: str = ""


@dataclass(frozen=True)
class ParseResult:
    records: tuple[RawDeliveryRecord, ...]
    available_kpis: tuple[KpiName, ...]
    short_rows: int = 0


@dataclass(frozen=True)
class KpiDataPoint:
    week: int
    region: Region
    kpi: KpiName
    value: float
    target: float


@dataclass(frozen=True)
class Alert:
    identity: str
    week: int
    region: Region
    kpi: KpiName
    value: float
    target: float


@dataclass(frozen=True)
class TrackedAction:
    identity: str
    alert: Alert
    action_taken: str
    timestamp: str
    outcome: str
    previous_value: float
    new_value: float


@dataclass(frozen=True)
class ChatMessage:
    role: str  # "user" or "model"
    content: str


@dataclass(frozen=True)
class ExecutiveBrief:
    week: int
    content: str  # Markdown


@dataclass(frozen=True)
class UploadStatus:
    message: str
    kind: str = "success"  # "success" or "error"

    @property
    def is_error(self) -> bool:
        return self.kind == "error"

