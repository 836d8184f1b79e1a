import re
import typing as t

from eventspan.settings._core import ESConfig
from eventspan.settings.exceptions import ConfigException


_DURATION_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*(ms|s|m)?\s*$")
_DURATION_UNITS_MS = {"ms": 1.0, "s": 1000.0, "m": 60000.0}


def parse_duration_ms(value: str) -> float:
    """Parse a duration such as ``5ms``, ``1.5s`` or ``2m`` into milliseconds.

    A bare number is taken as milliseconds. ``-1`` is kept as is and means "always".
    """
    match = _DURATION_RE.match(value)
    if match is None:
        raise ConfigException("Invalid duration: %r" % value)
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS_MS[unit or "ms"]


def parse_event_names(value: t.Union[str, None]) -> t.List[str]:
    if not isinstance(value, str):
        return []

    fragments = [s.strip() for s in value.split(",")]
    return [f for f in fragments if f != ""]


class TracingConfig(ESConfig):
    __prefix__ = "eventspan"

    span_frames_min_duration = ESConfig.v(
        float,
        "span_frames_min_duration",
        parser=parse_duration_ms,
        default=5.0,
        help_type="Duration",
        help="Spans that last at least this long get the stack trace of the instrumented call attached. "
        "``0`` disables stack trace collection, ``-1`` collects them for every span.",
    )

    framework_dispatch_ending_events = ESConfig.v(
        list,
        "framework_dispatch_ending_events",
        parser=parse_event_names,
        default=["process_view.django", "dispatch_request.flask"],
        help_type="List",
        help="Notification names marking the start of application code. The first of them to start "
        "ends the framework dispatch span of the transaction.",
    )

    disabled_normalizers = ESConfig.v(
        list,
        "disabled_normalizers",
        parser=parse_event_names,
        default=[],
        help_type="List",
        help="Notification names that should not be turned into spans.",
    )

    span_frames_min_duration_enabled = ESConfig.d(bool, lambda c: c.span_frames_min_duration != 0)


config = TracingConfig()
