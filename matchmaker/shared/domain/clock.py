from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]

utc_now = lambda: datetime.now(timezone.utc)
dt_to_ms = lambda dt: int(dt.timestamp() * 1000)


def ensure_utc(dt: datetime) -> datetime:
    """Mongo hands back naive datetimes; treat them as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
