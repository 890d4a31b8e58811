"""
Session state for the dashboard.

SessionState is a single immutable snapshot. Every user event goes through
one of the reducer functions below, which return a new snapshot; nothing is
mutated in place. Alerts are not stored: they are derived from the KPI data
and the action log each time they are read.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime

import numpy as np

from .errors import IngestionError
from .kpis import detect_alerts
from .loaders import parse_delivery_csv
from .models import (
    Alert,
    ChatMessage,
    ExecutiveBrief,
    KpiDataPoint,
    KpiName,
    Region,
    TrackedAction,
    UploadStatus,
)
from .simulator import log_action
from .transforms import aggregate_weekly_kpis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionState:
    kpi_data: tuple[KpiDataPoint, ...] = ()
    available_kpis: tuple[KpiName, ...] = ()
    tracked_actions: tuple[TrackedAction, ...] = ()  # newest first
    chat_messages: tuple[ChatMessage, ...] = ()
    upload_status: UploadStatus | None = None
    brief: ExecutiveBrief | None = None
    selected_region: Region = Region.NORTH_AMERICA
    selected_kpi: KpiName = KpiName.ON_TIME_DELIVERY

    @property
    def alerts(self) -> list[Alert]:
        return detect_alerts(list(self.kpi_data), list(self.tracked_actions))

    @property
    def has_data(self) -> bool:
        return bool(self.kpi_data)


def apply_upload(state: SessionState, csv_text: str) -> SessionState:
    """Replace the working dataset with the contents of a CSV upload.

    On success the action log, chat transcript and brief are cleared. On any
    ingestion error only the upload status changes; the previous dataset,
    actions and chat are kept as they were.
    """
    try:
        parsed = parse_delivery_csv(csv_text)
    except IngestionError as exc:
        logger.warning("Upload rejected: %s", exc)
        return apply_upload_error(state, str(exc))

    data = aggregate_weekly_kpis(list(parsed.records), list(parsed.available_kpis))
    kpi_list = ", ".join(k.value for k in parsed.available_kpis)
    message = (
        f"Successfully processed {len(parsed.records)} records. "
        f"Available KPIs: {kpi_list}."
    )

    selected_kpi = state.selected_kpi
    if parsed.available_kpis and selected_kpi not in parsed.available_kpis:
        selected_kpi = parsed.available_kpis[0]

    return replace(
        state,
        kpi_data=tuple(data),
        available_kpis=parsed.available_kpis,
        tracked_actions=(),
        chat_messages=(),
        brief=None,
        upload_status=UploadStatus(message=message, kind="success"),
        selected_kpi=selected_kpi,
    )


def apply_upload_error(state: SessionState, message: str) -> SessionState:
    return replace(state, upload_status=UploadStatus(message=message, kind="error"))


def apply_action(
    state: SessionState,
    alert: Alert,
    action_taken: str,
    rng: np.random.Generator | None = None,
    now: datetime | None = None,
) -> SessionState:
    """Log a remediation action; the alert drops out of state.alerts."""
    new_data, action = log_action(list(state.kpi_data), alert, action_taken, rng=rng, now=now)
    return replace(
        state,
        kpi_data=tuple(new_data),
        tracked_actions=(action,) + state.tracked_actions,
    )


def append_chat(state: SessionState, role: str, content: str) -> SessionState:
    if role not in ("user", "model"):
        raise ValueError(f"Unknown chat role: {role!r}")
    message = ChatMessage(role=role, content=content)
    return replace(state, chat_messages=state.chat_messages + (message,))


def select_region(state: SessionState, region: Region | str) -> SessionState:
    return replace(state, selected_region=Region(region))


def select_kpi(state: SessionState, kpi: KpiName | str) -> SessionState:
    """Switch the charted KPI; it must be in the current capability set."""
    kpi = KpiName(kpi)
    if state.available_kpis and kpi not in state.available_kpis:
        raise ValueError(f"KPI '{kpi.value}' is not available for the loaded data")
    return replace(state, selected_kpi=kpi)


def set_brief(state: SessionState, week: int, content: str) -> SessionState:
    return replace(state, brief=ExecutiveBrief(week=week, content=content))


def discard_brief(state: SessionState) -> SessionState:
    return replace(state, brief=None)


def brief_for_week(state: SessionState, week: int) -> ExecutiveBrief | None:
    """The stored brief, only if it was generated for `week`."""
    if state.brief is None or state.brief.week != week:
        return None
    return state.brief
