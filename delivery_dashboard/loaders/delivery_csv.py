"""
Loader for delivery-performance CSV exports.

Expected layout: one header row, then one order per line, comma-delimited.
Header names are matched case-insensitively with surrounding quotes removed,
so column order is free.

Required columns: order_date, delivery_time, store_latitude, store_longitude.
Optional columns enable extra KPIs (see config.OPTIONAL_KPI_HEADERS):
order_accurate, customer_satisfaction, agent_rating, order_time, pickup_time.

The import is all-or-nothing: a missing required header or a bad required
value on any row aborts the whole file.
"""

import csv
import io
import logging
from pathlib import Path

from ..config import OPTIONAL_KPI_HEADERS, REQUIRED_HEADERS, SCORE_RANGE
from ..errors import FileReadError, RowParseError, ValidationError
from ..models import KpiName, ParseResult, RawDeliveryRecord
from .utils import (
    normalise_date,
    normalise_header,
    parse_flag,
    safe_float,
    safe_int,
    strip_quotes,
)

logger = logging.getLogger(__name__)


def read_delivery_file(path: str | Path) -> str:
    """Read a CSV file fully into memory as text.

    Raises
    ------
    FileReadError if the file is missing, unreadable or not UTF-8.
    """
    try:
        return Path(path).read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read delivery file %s: %s", path, exc)
        raise FileReadError(f"Failed to read the file: {path}") from exc


def load_delivery_csv(path: str | Path) -> ParseResult:
    """Read and parse a delivery CSV file in one step."""
    return parse_delivery_csv(read_delivery_file(path))


def detect_available_kpis(header: list[str]) -> tuple[KpiName, ...]:
    """Return the KPIs computable from the given (normalised) header.

    On-Time Delivery only needs the required columns, so it is always
    present. The result follows KpiName declaration order.
    """
    present = set(header)
    available = [KpiName.ON_TIME_DELIVERY]
    for kpi, columns in OPTIONAL_KPI_HEADERS.items():
        if all(col in present for col in columns):
            available.append(kpi)
    return tuple(k for k in KpiName if k in available)


def parse_delivery_csv(text: str, delimiter: str = ",") -> ParseResult:
    """Parse raw CSV text into delivery records plus the KPI capability set.

    Parameters
    ----------
    text : Full file content.
    delimiter : Field separator. Fields may be double-quoted, including ones
                that contain the delimiter.

    Returns
    -------
    ParseResult with the records (file order), the available KPIs and the
    number of rows that had fewer cells than the header.

    Raises
    ------
    ValidationError : empty content, no data rows, or missing required headers.
    RowParseError : a required value on some row is invalid.
    """
    if not text or not text.strip():
        raise ValidationError("File is empty or could not be read.")

    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")), delimiter=delimiter)
    try:
        rows = [row for row in reader if any(cell.strip() for cell in row)]
    except csv.Error as exc:
        raise ValidationError(f"Could not read CSV content: {exc}") from exc
    if len(rows) < 2:
        raise ValidationError("CSV file must contain a header and at least one data row.")

    header = [normalise_header(h) for h in rows[0]]

    missing = tuple(h for h in REQUIRED_HEADERS if h not in header)
    if missing:
        raise ValidationError(
            f"Invalid or missing core CSV headers. Required: {', '.join(missing)}.",
            missing=missing,
        )

    available_kpis = detect_available_kpis(header)

    # First occurrence wins for duplicated header names
    col_index: dict[str, int] = {}
    for idx, name in enumerate(header):
        col_index.setdefault(name, idx)

    records = []
    short_rows = 0

    for offset, row in enumerate(rows[1:]):
        row_number = offset + 2
        values = [strip_quotes(v) for v in row]

        if len(values) < len(header):
            short_rows += 1
            logger.warning(
                "Row %d has fewer columns (%d) than the header (%d); "
                "missing values treated as empty",
                row_number, len(values), len(header),
            )

        records.append(_parse_row(values, col_index, row_number))

    logger.info(
        "Parsed %d delivery records (%d short rows); available KPIs: %s",
        len(records), short_rows, ", ".join(k.value for k in available_kpis),
    )
    return ParseResult(
        records=tuple(records),
        available_kpis=available_kpis,
        short_rows=short_rows,
    )


def _parse_row(values: list[str], col_index: dict[str, int], row_number: int) -> RawDeliveryRecord:
    def cell(name: str) -> str | None:
        idx = col_index.get(name)
        if idx is None or idx >= len(values):
            return None
        return values[idx]

    order_date = normalise_date(cell("order_date"))
    if order_date is None:
        raise RowParseError(row_number, f"unparseable order_date {cell('order_date')!r}")

    delivery_time = safe_int(cell("delivery_time"))
    if delivery_time is None or delivery_time < 0:
        raise RowParseError(
            row_number, f"delivery_time must be a non-negative integer, got {cell('delivery_time')!r}"
        )

    latitude = safe_float(cell("store_latitude"))
    longitude = safe_float(cell("store_longitude"))
    if latitude is None or longitude is None:
        raise RowParseError(
            row_number,
            f"coordinates must be finite numbers, got "
            f"({cell('store_latitude')!r}, {cell('store_longitude')!r})",
        )

    return RawDeliveryRecord(
        order_date=order_date,
        delivery_time=delivery_time,
        store_latitude=latitude,
        store_longitude=longitude,
        order_accurate=parse_flag(cell("order_accurate")),
        customer_satisfaction=_score_or_absent(safe_int(cell("customer_satisfaction"))),
        agent_rating=float(_score_or_absent(safe_float(cell("agent_rating")))),
        order_time=cell("order_time") or "",
        pickup_time=cell("pickup_time") or "",
    )


def _score_or_absent(val):
    """Scores outside the 1-5 scale count as absent (0)."""
    low, high = SCORE_RANGE
    if val is None or not low <= val <= high:
        return 0
    return val
