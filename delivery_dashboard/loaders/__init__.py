"""Data ingestion loaders for delivery-performance files."""

from .delivery_csv import (
    detect_available_kpis,
    load_delivery_csv,
    parse_delivery_csv,
    read_delivery_file,
)

__all__ = [
    "detect_available_kpis",
    "load_delivery_csv",
    "parse_delivery_csv",
    "read_delivery_file",
]
