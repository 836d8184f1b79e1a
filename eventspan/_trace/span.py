from typing import TYPE_CHECKING
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional

from eventspan.internal.logger import get_logger
from eventspan.internal.utils.time import Time


if TYPE_CHECKING:  # pragma: no cover
    from eventspan._trace.transaction import Transaction


log = get_logger(__name__)


class Span(object):
    """A timed, named unit of work inside a transaction.

    Spans are compared by identity: two spans with the same attributes are still
    two different units of work.
    """

    __slots__ = [
        "name",
        "type",
        "subtype",
        "action",
        "context",
        "transaction",
        "start_ns",
        "duration_ns",
        "original_backtrace",
        "_parent",
        "_on_finish_callbacks",
    ]

    def __init__(
        self,
        name: str,
        type: str,
        subtype: Optional[str] = None,
        action: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        transaction: Optional["Transaction"] = None,
        parent: Optional["Span"] = None,
        start_ns: Optional[int] = None,
        on_finish: Optional[List[Callable[["Span"], None]]] = None,
    ) -> None:
        self.name = name
        self.type = type
        self.subtype = subtype
        self.action = action
        self.context = context
        self.transaction = transaction
        self.start_ns = Time.time_ns() if start_ns is None else start_ns
        self.duration_ns: Optional[int] = None
        self.original_backtrace = None
        self._parent = parent
        self._on_finish_callbacks = [] if on_finish is None else on_finish

    @property
    def parent(self) -> Optional["Span"]:
        return self._parent

    @property
    def finished(self) -> bool:
        return self.duration_ns is not None

    @property
    def duration(self) -> Optional[float]:
        """The span duration in seconds, ``None`` while the span is running."""
        if self.duration_ns is None:
            return None
        return self.duration_ns / 1e9

    def finish(self, finish_time_ns: Optional[int] = None) -> None:
        """Mark the end time of the span. Finishing an already finished span does nothing."""
        if self.duration_ns is not None:
            log.debug("span %r has already been finished", self)
            return

        ft = Time.time_ns() if finish_time_ns is None else finish_time_ns
        self.duration_ns = max(0, ft - self.start_ns)

        for cb in self._on_finish_callbacks:
            cb(self)

    def __repr__(self) -> str:
        return "<Span(name=%r, type=%r, subtype=%r, action=%r)>" % (self.name, self.type, self.subtype, self.action)
