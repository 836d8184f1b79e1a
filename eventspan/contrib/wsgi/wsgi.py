import sys
from typing import TYPE_CHECKING


if TYPE_CHECKING:  # pragma: no cover
    from typing import Any
    from typing import Callable
    from typing import Dict
    from typing import Iterable
    from typing import Optional

    from eventspan._trace.agent import Agent
    from eventspan._trace.transaction import Transaction

import wrapt

from eventspan.internal.logger import get_logger


log = get_logger(__name__)


class _TransactionIterable(wrapt.ObjectProxy):
    """Response iterable ending the transaction once the server is done with it."""

    def __init__(self, wrapped, agent, transaction):
        super(_TransactionIterable, self).__init__(iter(wrapped))
        self._self_closeable = wrapped
        self._self_agent = agent
        self._self_transaction = transaction
        self._self_ended = False

    def __iter__(self):
        return self

    def __next__(self):
        try:
            return next(self.__wrapped__)
        except StopIteration:
            self._end_transaction()
            raise
        except Exception:
            self._end_transaction()
            raise

    def close(self):
        try:
            if getattr(self._self_closeable, "close", None):
                self._self_closeable.close()
        finally:
            self._end_transaction()

    def _end_transaction(self):
        if not self._self_ended:
            self._self_ended = True
            end_transaction(self._self_agent, self._self_transaction)

    def __getattribute__(self, name):
        if name == "__len__":
            # __len__ is defined by the parent class, wrapt.ObjectProxy.
            # However this attribute should not be defined for iterables.
            # By definition, iterables should not support len(...).
            raise AttributeError("__len__ is not supported")
        return super(_TransactionIterable, self).__getattribute__(name)


def end_transaction(agent, transaction):
    # type: (Agent, Transaction) -> None
    """End a request transaction and whatever framework dispatch span it still holds."""
    if transaction.framework_dispatch_span is not None:
        agent.end_span(transaction.framework_dispatch_span)
        transaction.framework_dispatch_span = None
    agent.end_transaction(transaction)


def default_transaction_name(environ):
    # type: (Dict[str, Any]) -> str
    return "{} {}".format(environ.get("REQUEST_METHOD", "GET"), environ.get("PATH_INFO") or "/")


class EventSpanMiddleware(object):
    """WSGI middleware starting a transaction for every request.

    The transaction captures the request timing metrics of the environ and opens the
    framework dispatch span, which is ended by the first notification marking the
    start of application code, or together with the transaction otherwise.

    :param application: The WSGI application to apply the middleware to.
    :param agent: Agent instance to use the middleware with.
    :param transaction_name: Callable computing the initial transaction name from the environ.
    """

    def __init__(self, application, agent, transaction_name=default_transaction_name):
        # type: (Callable, Agent, Callable[[Dict[str, Any]], str]) -> None
        self.app = application
        self.agent = agent
        self.transaction_name = transaction_name

    def __call__(self, environ, start_response):
        # type: (Dict[str, Any], Callable) -> Iterable
        transaction = self.agent.start_transaction(self.transaction_name(environ), "request", environ=environ)
        self.agent.start_framework_dispatch_span()
        try:
            result = self.app(environ, start_response)
        except BaseException:
            log.debug("application raised, ending transaction %r", transaction, exc_info=sys.exc_info())
            end_transaction(self.agent, transaction)
            raise
        return _TransactionIterable(result, self.agent, transaction)
