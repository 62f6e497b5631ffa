# app/core/helpers.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current time (UTC)."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    SQLite hands back naive datetimes; treat them as UTC so they can be
    compared with aware ones.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def pluralize(count: int | None, noun: str) -> str:
    """
    "0 members", "1 member", "1,234 members".
    """
    count = count or 0
    if count == 1:
        return f"1 {noun}"
    return f"{count:,} {noun}s"


def format_money(value: float | None) -> str:
    """12.5 -> "$12.50"."""
    return f"${(value or 0):.2f}"
