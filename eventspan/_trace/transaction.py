from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Hashable
from typing import List
from typing import Optional
from typing import Union

from eventspan._trace.span import Span
from eventspan.internal.utils.time import Time


if TYPE_CHECKING:  # pragma: no cover
    from eventspan.internal.request_metrics import RequestMetrics


@dataclass(frozen=True)
class SpanNotification:
    """A started notification that produced a span."""

    id: Hashable
    span: Span


@dataclass(frozen=True)
class SkippedNotification:
    """A started notification that was deliberately not recorded.

    It is still tracked so that its finish can be matched and discarded.
    """

    id: Hashable

    @property
    def span(self) -> None:
        return None


Notification = Union[SpanNotification, SkippedNotification]


class Transaction(object):
    """One top level unit of work, usually one inbound request.

    ``notifications`` is the stack of in-flight notifications: frames are appended
    when a notification starts and popped from the same end when one finishes.
    """

    def __init__(self, name: str, type: str = "request", start_ns: Optional[int] = None) -> None:
        self.name = name
        self.type = type
        self.start_ns = Time.time_ns() if start_ns is None else start_ns
        self.duration_ns: Optional[int] = None
        self.notifications: List[Notification] = []
        self.framework_dispatch_span: Optional[Span] = None
        self.spans: List[Span] = []
        self.request_metrics: Optional["RequestMetrics"] = None

    @property
    def finished(self) -> bool:
        return self.duration_ns is not None

    def finish(self, finish_time_ns: Optional[int] = None) -> None:
        if self.duration_ns is not None:
            return
        ft = Time.time_ns() if finish_time_ns is None else finish_time_ns
        self.duration_ns = max(0, ft - self.start_ns)

    def _on_span_finish(self, span: Span) -> None:
        self.spans.append(span)

    def __repr__(self) -> str:
        return "<Transaction(name=%r, type=%r)>" % (self.name, self.type)
