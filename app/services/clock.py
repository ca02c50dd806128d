from datetime import datetime, timezone

from app.core.errors import InvalidArgument


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything stored here is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value, field: str, default: datetime | None = None) -> datetime:
    if value is None or value == "":
        if default is None:
            raise InvalidArgument(f"{field} is required")
        return as_utc(default)
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            pass
    raise InvalidArgument(f"{field} is not a valid date-time")
