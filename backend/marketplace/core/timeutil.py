from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """Naive UTC timestamp. Every persisted datetime follows this convention."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def utc_day_bounds(value: datetime) -> tuple[datetime, datetime]:
    """[start, end) of the UTC calendar day containing ``value``."""

    day: date = as_naive_utc(value).date()
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def utc_now_iso() -> str:
    return utc_now().isoformat(timespec="seconds") + "Z"
