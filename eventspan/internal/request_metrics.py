"""
Request level timing derived from the metadata of an inbound request.

Reverse proxies and platforms stamp the moment they received a request in the
``X-Request-Start`` header, but they do not agree on the unit::

    X-Request-Start: t=1700000000.123     # nginx, seconds with a fraction
    X-Request-Start: 1700000000123        # Heroku, whole milliseconds
    X-Request-Start: 1700000000123456     # whole microseconds
    X-Request-Start: 1700000000123456789  # Render, whole nanoseconds

The unit is inferred from the magnitude of the value: a timestamp near "now" is
roughly a thousand times larger in each successive unit, and any instant after
2000-01-01 expressed in seconds is smaller than the same cutoff expressed in
milliseconds, and so on up the ladder.
"""
import datetime
from typing import Any
from typing import Dict
from typing import Mapping
from typing import Optional

from eventspan.internal.logger import get_logger
from eventspan.internal.utils.time import Time
from eventspan.internal.utils.time import epoch_ms
from eventspan.internal.utils.time import from_epoch_seconds


log = get_logger(__name__)

REQUEST_ID_KEY = "HTTP_X_REQUEST_ID"
REQUEST_START_KEY = "HTTP_X_REQUEST_START"
INPUT_KEY = "wsgi.input"
# Milliseconds the server spent waiting for the request body to arrive
NETWORK_TIME_KEY = "server.request_body_wait"

REQUEST_START_PREFIX = "t="

MILLISECONDS_CUTOFF = epoch_ms(datetime.datetime(2000, 1, 1, tzinfo=datetime.timezone.utc))
MICROSECONDS_CUTOFF = MILLISECONDS_CUTOFF * 1000
NANOSECONDS_CUTOFF = MICROSECONDS_CUTOFF * 1000


def _input_size(stream: Any) -> int:
    if stream is None:
        return 0
    try:
        return len(stream)
    except TypeError:
        pass
    try:
        if not stream.seekable():
            return 0
        position = stream.tell()
        stream.seek(0, 2)
        size = stream.tell()
        stream.seek(position)
        size = int(size)
    except (AttributeError, OSError, TypeError, ValueError):
        return 0
    return size if size >= 0 else 0


def _to_number(value: Any) -> float:
    if value is None:
        return 0
    try:
        return float(value)
    except (TypeError, ValueError):
        log.debug("ignoring non numeric network time %r", value)
        return 0


def to_epoch_seconds(value: float) -> float:
    """Interpret a unit-less request start value and return seconds since the epoch."""
    if value < MILLISECONDS_CUTOFF:
        return value
    if value < MICROSECONDS_CUTOFF:
        return int(value) / 1e3
    if value < NANOSECONDS_CUTOFF:
        return int(value) / 1e6
    return int(value) / 1e9


def parse_request_start(header: Optional[str]) -> Optional[float]:
    """Parse a request start header into seconds since the epoch, ``None`` when absent or malformed."""
    if header is None:
        return None
    header = str(header).strip()
    if header.startswith(REQUEST_START_PREFIX):
        header = header[len(REQUEST_START_PREFIX) :]
    try:
        value = float(header)
        seconds = to_epoch_seconds(value)
    except (ValueError, OverflowError):
        log.debug("unable to parse request start header %r", header)
        return None
    if seconds != seconds or seconds in (float("inf"), float("-inf")):
        log.debug("unable to parse request start header %r", header)
        return None
    return seconds


class RequestMetrics(object):
    """Timing information about a single inbound request.

    All values are read from ``environ`` when the instance is created; later
    changes to the mapping are not observed.

    :param environ: WSGI style environ, i.e. headers as ``HTTP_*`` keys plus server keys.
    """

    def __init__(self, environ: Mapping[str, Any]) -> None:
        self.request_id: str = environ.get(REQUEST_ID_KEY) or ""
        self.size: int = _input_size(environ.get(INPUT_KEY))
        self.network_time: float = _to_number(environ.get(NETWORK_TIME_KEY))
        self._started_at_s = parse_request_start(environ.get(REQUEST_START_KEY))
        self.started_at: Optional[datetime.datetime] = (
            from_epoch_seconds(self._started_at_s) if self._started_at_s is not None else None
        )
        if self.started_at is None:
            self._started_at_s = None

    @property
    def queue_time(self) -> float:
        """Milliseconds between the upstream proxy receiving the request and now, net of network time.

        Never negative: a start time in the future (clock skew) counts as no queueing.
        """
        if self._started_at_s is None:
            return 0.0
        elapsed_ms = (Time.time() - self._started_at_s) * 1000.0
        return max(0.0, elapsed_ms - self.network_time)

    @property
    def queue_time_micros(self) -> int:
        return int(self.queue_time * 1000)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "size": self.size,
            "network_time": self.network_time,
            "started_at": self.started_at,
            "queue_time": self.queue_time,
            "queue_time_micros": self.queue_time_micros,
        }

    def __repr__(self) -> str:
        return "<RequestMetrics(request_id=%r, size=%r, network_time=%r, started_at=%r)>" % (
            self.request_id,
            self.size,
            self.network_time,
            self.started_at,
        )
