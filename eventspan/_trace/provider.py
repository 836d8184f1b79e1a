import abc
import contextvars
from typing import Optional

from eventspan._trace.span import Span
from eventspan._trace.transaction import Transaction
from eventspan.internal.logger import get_logger


log = get_logger(__name__)


class BaseContextProvider(metaclass=abc.ABCMeta):
    """
    A ``ContextProvider`` keeps track of the transaction and of the span that are
    active in the current execution. Context providers must inherit this class
    and implement:
    * ``activate_transaction`` / ``transaction`` for the active ``Transaction``
    * ``activate`` / ``active`` for the active ``Span``
    """

    @abc.abstractmethod
    def activate_transaction(self, transaction: Optional[Transaction]) -> None:
        pass

    @abc.abstractmethod
    def transaction(self) -> Optional[Transaction]:
        pass

    @abc.abstractmethod
    def activate(self, span: Optional[Span]) -> None:
        pass

    @abc.abstractmethod
    def active(self) -> Optional[Span]:
        pass


class DefaultContextProvider(BaseContextProvider):
    """Context provider that retrieves the active transaction and span from context variables.

    It is suitable for synchronous programming and for asynchronous executors
    that support contextvars. Each provider owns its own variables so that
    independent agents do not see each other's state.
    """

    def __init__(self) -> None:
        super(DefaultContextProvider, self).__init__()
        self._transaction_var: contextvars.ContextVar[Optional[Transaction]] = contextvars.ContextVar(
            "eventspan_transaction", default=None
        )
        self._span_var: contextvars.ContextVar[Optional[Span]] = contextvars.ContextVar("eventspan_span", default=None)

    def activate_transaction(self, transaction: Optional[Transaction]) -> None:
        """Makes the given transaction active in the current execution, with no active span."""
        self._transaction_var.set(transaction)
        self._span_var.set(None)

    def transaction(self) -> Optional[Transaction]:
        return self._transaction_var.get()

    def activate(self, span: Optional[Span]) -> None:
        """Makes the given span active in the current execution."""
        self._span_var.set(span)

    def active(self) -> Optional[Span]:
        """Returns the active span for the current execution."""
        span = self._span_var.get()
        if span is None:
            return None
        return self._update_active(span)

    def _update_active(self, span: Span) -> Optional[Span]:
        """Updates the active span.

        When a span finishes, the active span becomes its nearest unfinished ancestor.
        """
        new_active: Optional[Span] = span
        while new_active is not None and new_active.duration_ns is not None:
            new_active = new_active._parent
        if new_active is not span:
            self.activate(new_active)
        return new_active
