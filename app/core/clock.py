from datetime import datetime, timezone
from typing import Callable

# Anything returning an aware UTC datetime; tests pass a settable fake.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Some drivers hand back naive timestamps; treat those as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
