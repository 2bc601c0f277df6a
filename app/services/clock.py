from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC now; the DateTime columns store naive UTC values."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_iso(dt: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a Z suffix."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat(timespec="milliseconds") + "Z"
