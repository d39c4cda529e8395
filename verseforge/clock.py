"""Timestamp helpers.

Every stored timestamp is an ISO 8601 string with an offset.  Callers may pass
their own ``now``; naive datetimes are read as local time.
"""

from __future__ import annotations

from datetime import date, datetime, timezone


def now_local() -> datetime:
    return datetime.now().astimezone()


def ensure_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.astimezone()
    return moment


def isoformat(moment: datetime) -> str:
    return ensure_aware(moment).isoformat()


def parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return ensure_aware(value)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        return ensure_aware(datetime.fromisoformat(text))
    except ValueError:
        return None


def calendar_day(moment: datetime) -> date:
    """The calendar date of ``moment`` in its own offset."""

    return ensure_aware(moment).date()


def utc_day(moment: datetime) -> str:
    return ensure_aware(moment).astimezone(timezone.utc).date().isoformat()


def parse_day(value: object) -> date | None:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    moment = parse_timestamp(value)
    if moment is not None:
        return moment.date()
    return None


__all__ = [
    "calendar_day",
    "ensure_aware",
    "isoformat",
    "now_local",
    "parse_day",
    "parse_timestamp",
    "utc_day",
]
