"""Date/time helpers shared by the transformers."""

from datetime import date, datetime, timezone

DATE_FORMAT = "%d/%m/%Y"
TIME_FORMAT = "%H:%M"
DATETIME_FORMAT = "%d/%m/%Y %H:%M"


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so aware and naive values compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse an OData timestamp; returns None for blanks and garbage."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_date(value: str | datetime | None) -> date | None:
    """Calendar date of an OData date/timestamp value (time of day dropped)."""
    parsed = parse_datetime(value)
    if parsed is not None:
        return parsed.date()
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def format_date(value: datetime | date | None) -> str:
    return value.strftime(DATE_FORMAT) if value else ""


def format_time(value: datetime | None) -> str:
    return value.strftime(TIME_FORMAT) if value else ""


def format_datetime(value: datetime | None) -> str:
    return value.strftime(DATETIME_FORMAT) if value else ""


def sort_stamp(value: datetime | None) -> str:
    """UTC ISO string usable as a sort key; blank sorts first."""
    return as_utc(value).isoformat() if value else ""
