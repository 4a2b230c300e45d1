"""Shared utilities."""

from .timestamps import (
    ensure_utc,
    format_timestamp,
    parse_timestamp,
    seconds_until,
    utc_now,
)

__all__ = [
    "utc_now",
    "ensure_utc",
    "format_timestamp",
    "parse_timestamp",
    "seconds_until",
]
