from typing import Any
from typing import Dict
from typing import Mapping
from typing import Optional

from eventspan._trace.provider import BaseContextProvider
from eventspan._trace.provider import DefaultContextProvider
from eventspan._trace.span import Span
from eventspan._trace.transaction import Transaction
from eventspan.ext import SpanSubtypes
from eventspan.ext import SpanTypes
from eventspan.internal.logger import get_logger
from eventspan.internal.request_metrics import RequestMetrics
from eventspan.settings.tracing import TracingConfig
from eventspan.settings.tracing import config as tracing_config


log = get_logger(__name__)


class Agent(object):
    """
    Agent creates transactions and the spans that measure the sections of work inside them.

    Transactions and spans are tracked per execution context: starting a span makes it
    the current span, ending the current span makes its parent current again::

        agent = Agent()
        transaction = agent.start_transaction("GET /users")
        span = agent.start_span("SELECT FROM users", "db", subtype="postgresql", action="sql")
        assert agent.current_span() is span
        agent.end_span()
        assert agent.current_span() is None
        agent.end_transaction()
    """

    def __init__(
        self, config: Optional[TracingConfig] = None, context_provider: Optional[BaseContextProvider] = None
    ) -> None:
        self.config = config if config is not None else tracing_config
        self.context_provider = context_provider if context_provider is not None else DefaultContextProvider()

    def current_transaction(self) -> Optional[Transaction]:
        """Return the transaction active in the current execution context."""
        return self.context_provider.transaction()

    def current_span(self) -> Optional[Span]:
        """Return the span active in the current execution context."""
        return self.context_provider.active()

    def start_transaction(
        self, name: str, type: str = "request", environ: Optional[Mapping[str, Any]] = None
    ) -> Transaction:
        """Start and activate a new transaction.

        :param environ: metadata of the inbound request the transaction serves. When
                        given, its timing is captured in ``transaction.request_metrics``.
        """
        if self.current_transaction() is not None:
            log.debug("transaction %r replaces the active transaction", name)
        transaction = Transaction(name, type)
        if environ is not None:
            transaction.request_metrics = RequestMetrics(environ)
        self.context_provider.activate_transaction(transaction)
        return transaction

    def end_transaction(self, transaction: Optional[Transaction] = None) -> Optional[Transaction]:
        """Finish the given transaction, the current one by default.

        Spans still running and notifications still in flight are left as they are.
        """
        if transaction is None:
            transaction = self.current_transaction()
        if transaction is None:
            return None
        transaction.finish()
        if transaction is self.current_transaction():
            self.context_provider.activate_transaction(None)
        log.debug("ended transaction %r with %d spans", transaction, len(transaction.spans))
        return transaction

    def start_span(
        self,
        name: str,
        type: str,
        subtype: Optional[str] = None,
        action: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> Optional[Span]:
        """Start a span as a child of the current span and make it current.

        Returns ``None`` when there is no current transaction.
        """
        transaction = self.current_transaction()
        if transaction is None:
            log.debug("no transaction to start span %r in", name)
            return None

        span = Span(
            name,
            type,
            subtype=subtype,
            action=action,
            context=context,
            transaction=transaction,
            parent=self.current_span(),
            on_finish=[transaction._on_span_finish, self._on_span_finish],
        )
        self.context_provider.activate(span)
        return span

    def end_span(self, span: Optional[Span] = None) -> Optional[Span]:
        """Finish the given span, the current one by default.

        When the span was current, its nearest running ancestor becomes current.
        """
        if span is None:
            span = self.current_span()
        if span is None:
            return None
        span.finish()
        return span

    def start_framework_dispatch_span(
        self, name: str = "wsgi.dispatch", subtype: str = SpanSubtypes.WSGI.value
    ) -> Optional[Span]:
        """Start the span covering the framework's own work before application code runs.

        It is recorded on the transaction and ended by the first notification marking the
        beginning of application code.
        """
        transaction = self.current_transaction()
        if transaction is None:
            return None
        span = self.start_span(name, SpanTypes.APP.value, subtype=subtype)
        transaction.framework_dispatch_span = span
        return span

    def _on_span_finish(self, span: Span) -> None:
        active = self.current_span()
        # Debug check: if the finishing span has a parent and its parent
        # is not the next active span then this is an error in synchronous tracing.
        if span.parent is not None and active is not span.parent:
            log.debug("span %r closing after its parent %r, this is an error when not using async", span, span.parent)
        log.debug("finishing span - %r", span)
