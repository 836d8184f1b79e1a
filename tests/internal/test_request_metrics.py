import datetime
import io
import time

import pytest

from eventspan.internal.request_metrics import MICROSECONDS_CUTOFF
from eventspan.internal.request_metrics import MILLISECONDS_CUTOFF
from eventspan.internal.request_metrics import NANOSECONDS_CUTOFF
from eventspan.internal.request_metrics import RequestMetrics
from eventspan.internal.request_metrics import parse_request_start
from eventspan.internal.request_metrics import to_epoch_seconds


@pytest.fixture
def environ():
    return {
        "HTTP_X_REQUEST_ID": "test-request-123",
        "wsgi.input": io.BytesIO(b"test body"),
        "server.request_body_wait": 10,
    }


def _timestamp(dt):
    return dt.timestamp()


def test_request_id(environ):
    assert RequestMetrics(environ).request_id == "test-request-123"


def test_request_id_missing(environ):
    del environ["HTTP_X_REQUEST_ID"]
    assert RequestMetrics(environ).request_id == ""


def test_size_from_input(environ):
    assert RequestMetrics(environ).size == 9


def test_size_keeps_input_position(environ):
    environ["wsgi.input"].seek(4)
    metrics = RequestMetrics(environ)

    assert metrics.size == 9
    assert environ["wsgi.input"].tell() == 4


@pytest.mark.parametrize("body,size", [(b"abc", 3), ("a string", 8), (object(), 0), (None, 0)])
def test_size_without_stream_api(environ, body, size):
    environ["wsgi.input"] = body
    assert RequestMetrics(environ).size == size


def test_size_non_seekable_input(environ):
    class Unseekable(io.RawIOBase):
        def seekable(self):
            return False

    environ["wsgi.input"] = Unseekable()
    assert RequestMetrics(environ).size == 0


class SeekReturnsNone(object):
    """Body stream whose ``seek`` does not report the new position."""

    def __init__(self, length, tell_end=None):
        self.length = length
        self.position = 0
        self.tell_end = tell_end

    def seekable(self):
        return True

    def tell(self):
        if self.position == self.length and self.tell_end is not None:
            return self.tell_end
        return self.position

    def seek(self, offset, whence=0):
        self.position = self.length + offset if whence == 2 else offset


def test_size_when_seek_returns_none(environ):
    stream = SeekReturnsNone(12)
    stream.position = 3
    environ["wsgi.input"] = stream

    metrics = RequestMetrics(environ)

    assert metrics.size == 12
    assert isinstance(metrics.size, int)
    assert stream.position == 3
    assert metrics.as_dict()["size"] == 12


@pytest.mark.parametrize("tell_end", [object(), -5, "n/a"])
def test_size_invalid_stream_position(environ, tell_end):
    environ["wsgi.input"] = SeekReturnsNone(12, tell_end=tell_end)

    assert RequestMetrics(environ).size == 0


def test_size_missing_input(environ):
    del environ["wsgi.input"]
    assert RequestMetrics(environ).size == 0


def test_network_time(environ):
    assert RequestMetrics(environ).network_time == 10


@pytest.mark.parametrize("value", ["12.5", 12.5])
def test_network_time_converted(environ, value):
    environ["server.request_body_wait"] = value
    assert RequestMetrics(environ).network_time == 12.5


@pytest.mark.parametrize("value", [None, "n/a"])
def test_network_time_missing(environ, value):
    environ["server.request_body_wait"] = value
    assert RequestMetrics(environ).network_time == 0


def test_network_time_absent(environ):
    del environ["server.request_body_wait"]
    assert RequestMetrics(environ).network_time == 0


def test_started_at_missing(environ):
    assert RequestMetrics(environ).started_at is None


def test_started_at_fractional_seconds(environ):
    timestamp = time.time()
    environ["HTTP_X_REQUEST_START"] = str(timestamp)

    started_at = RequestMetrics(environ).started_at

    assert started_at.tzinfo is datetime.timezone.utc
    assert _timestamp(started_at) == pytest.approx(timestamp, abs=0.001)


def test_started_at_with_prefix(environ):
    timestamp = time.time()
    environ["HTTP_X_REQUEST_START"] = "t=%s" % timestamp
    prefixed = RequestMetrics(environ).started_at

    environ["HTTP_X_REQUEST_START"] = str(timestamp)
    plain = RequestMetrics(environ).started_at

    assert prefixed == plain
    assert _timestamp(prefixed) == pytest.approx(timestamp, abs=0.001)


def test_started_at_milliseconds(environ):
    timestamp_ms = int(time.time() * 1000)
    environ["HTTP_X_REQUEST_START"] = str(timestamp_ms)

    assert _timestamp(RequestMetrics(environ).started_at) == pytest.approx(timestamp_ms / 1e3, abs=0.001)


def test_started_at_microseconds(environ):
    timestamp_us = int(time.time() * 1_000_000)
    environ["HTTP_X_REQUEST_START"] = str(timestamp_us)

    assert _timestamp(RequestMetrics(environ).started_at) == pytest.approx(timestamp_us / 1e6, abs=0.001)


def test_started_at_nanoseconds(environ):
    timestamp_ns = time.time_ns()
    environ["HTTP_X_REQUEST_START"] = str(timestamp_ns)

    assert _timestamp(RequestMetrics(environ).started_at) == pytest.approx(timestamp_ns / 1e9, abs=0.001)


@pytest.mark.parametrize("header", ["", "t=", "abc", "t=abc", "nan", "inf", "1e400"])
def test_started_at_unparseable(environ, header):
    environ["HTTP_X_REQUEST_START"] = header
    metrics = RequestMetrics(environ)

    assert metrics.started_at is None
    assert metrics.queue_time == 0.0


@pytest.mark.parametrize(
    "value,seconds",
    [
        (1700000000, 1700000000),
        (1700000000.25, 1700000000.25),
        (1700000000000, 1700000000),
        (1700000000123, 1700000000.123),
        (1700000000000000, 1700000000),
        (1700000000000000000, 1700000000),
        (MILLISECONDS_CUTOFF - 1, MILLISECONDS_CUTOFF - 1),
        (MILLISECONDS_CUTOFF, MILLISECONDS_CUTOFF / 1e3),
        (MICROSECONDS_CUTOFF, MICROSECONDS_CUTOFF / 1e6),
        (NANOSECONDS_CUTOFF, NANOSECONDS_CUTOFF / 1e9),
    ],
)
def test_unit_inference(value, seconds):
    assert to_epoch_seconds(value) == pytest.approx(seconds)


def test_whole_units_drop_fraction():
    assert to_epoch_seconds(1700000000123.9) == pytest.approx(1700000000.123)


def test_parse_request_start_strips_whitespace():
    assert parse_request_start(" t=1700000000.5 ") == 1700000000.5


def test_queue_time_without_start(environ):
    metrics = RequestMetrics(environ)

    assert metrics.queue_time == 0.0
    assert metrics.queue_time_micros == 0


def test_queue_time(environ):
    environ["HTTP_X_REQUEST_START"] = str(time.time() - 0.1)
    environ["server.request_body_wait"] = 0

    assert RequestMetrics(environ).queue_time == pytest.approx(100, abs=20)


def test_queue_time_subtracts_network_time(environ):
    environ["HTTP_X_REQUEST_START"] = str(time.time() - 0.1)
    environ["server.request_body_wait"] = 50

    assert RequestMetrics(environ).queue_time == pytest.approx(50, abs=20)


def test_queue_time_never_negative(environ):
    environ["HTTP_X_REQUEST_START"] = str(time.time() + 1.0)

    metrics = RequestMetrics(environ)

    assert metrics.queue_time == 0
    assert metrics.queue_time_micros == 0


def test_queue_time_micros(environ):
    environ["HTTP_X_REQUEST_START"] = str(time.time() - 0.1)
    environ["server.request_body_wait"] = 0

    assert RequestMetrics(environ).queue_time_micros == pytest.approx(100_000, abs=20_000)


def test_snapshot_taken_at_construction(environ):
    metrics = RequestMetrics(environ)
    environ["HTTP_X_REQUEST_ID"] = "changed"
    environ["HTTP_X_REQUEST_START"] = str(time.time())

    assert metrics.request_id == "test-request-123"
    assert metrics.started_at is None


def test_as_dict(environ):
    metrics = RequestMetrics(environ)

    assert metrics.as_dict() == {
        "request_id": "test-request-123",
        "size": 9,
        "network_time": 10,
        "started_at": None,
        "queue_time": 0.0,
        "queue_time_micros": 0,
    }


def test_cutoffs():
    assert MILLISECONDS_CUTOFF == 946684800000
    assert MICROSECONDS_CUTOFF == MILLISECONDS_CUTOFF * 1000
    assert NANOSECONDS_CUTOFF == MICROSECONDS_CUTOFF * 1000
