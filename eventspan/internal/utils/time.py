import datetime
import time as builtin_time
from typing import Optional


class Time:
    """
    References to the standard Python time functions that won't be clobbered by `freezegun`.

    `freezegun`_ scans all loaded modules to check for imported functions from the `time` module, but it does not look
    inside classes or other objects, so these references are safe to use in the tracer.

    .. _freezegun: https://github.com/spulec/freezegun/blob/1.5.3/freezegun/api.py#L817
    """

    time = builtin_time.time
    time_ns = builtin_time.time_ns


def epoch_ms(dt: datetime.datetime) -> int:
    """Return the number of whole milliseconds between the unix epoch and ``dt``.

    Naive datetimes are taken as UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return int(dt.timestamp()) * 1000


def from_epoch_seconds(seconds: float) -> Optional[datetime.datetime]:
    """Convert seconds since the epoch to an aware UTC datetime, ``None`` when out of range."""
    try:
        return datetime.datetime.fromtimestamp(seconds, tz=datetime.timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
