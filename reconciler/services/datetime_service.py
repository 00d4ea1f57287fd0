"""Datetime parsing for inventory timestamps: lax input -> aware UTC output."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone

import pendulum

logger = logging.getLogger(__name__)

# Snapshot rows: "YYYY/MM/DD" + "HH:MM:SS". One-digit month/day/hour accepted.
SNAPSHOT_FORMAT = "YYYY/M/D H:mm:ss"

# Cloud listings are exported in local time, nine hours behind the timestamps
# recorded by the temp storage listings.
CLOUD_OFFSET_HOURS = 9

# Stands in for "no timestamp"; earlier than any real modification time.
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_snapshot_datetime(date_part: str, time_part: str) -> datetime:
    """Parse a snapshot date and time into an aware UTC datetime.

    Raises ``ValueError`` when the pair does not match ``SNAPSHOT_FORMAT``.
    """
    value = f"{date_part.strip()} {time_part.strip()}"
    return pendulum.from_format(value, SNAPSHOT_FORMAT, tz="UTC")


def parse_snapshot_datetime_or_zero(date_part: str, time_part: str) -> datetime:
    """Like ``parse_snapshot_datetime`` but fall back to ``ZERO_TIME``.

    A fallback compares as the earliest possible time, so it can hide a
    modification-time mismatch downstream.
    """
    try:
        return parse_snapshot_datetime(date_part, time_part)
    except ValueError:
        logger.debug("Unparsable timestamp %r %r, using zero time", date_part, time_part)
        return ZERO_TIME


def parse_cloud_datetime(value: str) -> datetime:
    """Parse a cloud listing ``"<date> <time>"`` field and apply the fixed offset."""
    date_part, _, time_part = value.replace('"', "").strip().partition(" ")
    parsed = pendulum.from_format(f"{date_part} {time_part.strip()}", SNAPSHOT_FORMAT, tz="UTC")
    return parsed.add(hours=CLOUD_OFFSET_HOURS)


def epoch_seconds(dt: datetime | None) -> int:
    """Return whole seconds since the Unix epoch; ``None`` counts as ``ZERO_TIME``."""
    if dt is None:
        dt = ZERO_TIME
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return math.floor((dt - _EPOCH).total_seconds())


def format_snapshot_date(dt: datetime) -> str:
    """Format the date column of a snapshot row (``YYYY/MM/DD``)."""
    return dt.strftime("%Y/%m/%d")


def format_snapshot_time(dt: datetime) -> str:
    """Format the time column of a snapshot row (``HH:MM:SS``)."""
    return dt.strftime("%H:%M:%S")
