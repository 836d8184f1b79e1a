"""
Turns notifications into spans.

``NotificationSubscriber`` listens on the notification bus for every name a normalizer
knows about. Each start pushes exactly one frame on the notification stack of the current
transaction, each finish pops frames until it finds the one carrying its correlation id::

    agent = Agent()
    subscriber = NotificationSubscriber(agent)
    subscriber.register()

    agent.start_transaction("GET /")
    with notifications.instrument("sql.sqlalchemy", {"sql": "SELECT * FROM users"}):
        ...  # a "SELECT FROM users" span is running here

Frames popped on the way to the match are dropped: a correct source finishes nested
notifications in the reverse order of their starts, and a frame left above the match
belongs to a notification whose finish is no longer expected. Such a frame's span is not
ended by the subscriber.

A transaction may also carry a framework dispatch span covering the framework's own work
before the application is reached; it is ended as soon as the first notification marking
the beginning of application code starts.
"""
import re
from typing import Any
from typing import Dict
from typing import Hashable
from typing import Optional
from typing import Pattern

from eventspan._trace.agent import Agent
from eventspan._trace.normalizers import SKIP
from eventspan._trace.normalizers import Normalizers
from eventspan._trace.transaction import SkippedNotification
from eventspan._trace.transaction import SpanNotification
from eventspan._trace.transaction import Transaction
from eventspan.internal import notifications
from eventspan.internal.logger import get_logger
from eventspan.internal.notifications import Notifier
from eventspan.internal.notifications import Subscription


log = get_logger(__name__)

# matches nothing, used when no normalizer is enabled
_NO_NOTIFICATIONS = re.compile(r"(?!)")


class NotificationSubscriber(object):
    """Correlate notification starts and finishes into spans of the current transaction.

    :param agent: the agent providing the current transaction and span, and starting/ending spans.
    :param notifier: the bus to subscribe to. Defaults to the process wide bus.
    :param normalizers: the normalizers classifying notifications. Built from the agent configuration
                        by default.
    """

    def __init__(
        self,
        agent: Agent,
        notifier: Optional[Notifier] = None,
        normalizers: Optional[Normalizers] = None,
    ) -> None:
        self._agent = agent
        self._notifier = notifier if notifier is not None else notifications.notifier
        self._normalizers = normalizers if normalizers is not None else Normalizers.build(agent.config)
        self._dispatch_ending_events = frozenset(agent.config.framework_dispatch_ending_events)
        self._subscription: Optional[Subscription] = None
        self._pattern: Optional[Pattern] = None

    @property
    def registered(self) -> bool:
        return self._subscription is not None

    @property
    def pattern(self) -> Pattern:
        if self._pattern is None:
            keys = sorted(self._normalizers.keys())
            if keys:
                self._pattern = re.compile("^(%s)$" % "|".join(re.escape(k) for k in keys))
            else:
                self._pattern = _NO_NOTIFICATIONS
        return self._pattern

    def register(self) -> None:
        if self._subscription is not None:
            self.unregister()

        self._subscription = self._notifier.subscribe(self.pattern, self)
        log.debug("notification subscriber registered for %s", self.pattern.pattern)

    def unregister(self) -> None:
        self._notifier.unsubscribe(self._subscription)
        self._subscription = None

    def on_start(self, name: str, id: Hashable, payload: Dict[str, Any]) -> None:
        transaction = self._agent.current_transaction()
        if transaction is None:
            return

        self._end_framework_dispatch_span(transaction, name)

        normalized = self._normalizers.normalize(transaction, name, payload)

        if normalized is SKIP:
            transaction.notifications.append(SkippedNotification(id))
            return

        span_name, span_type, subtype, action, context = normalized
        span = self._agent.start_span(span_name, span_type, subtype=subtype, action=action, context=context)
        transaction.notifications.append(SpanNotification(id, span))

    def on_finish(self, name: str, id: Hashable, payload: Dict[str, Any]) -> None:
        transaction = self._agent.current_transaction()
        if transaction is None:
            return

        stack = transaction.notifications
        while stack:
            notification = stack.pop()
            if notification.id != id:
                continue

            span = notification.span
            if span is not None:
                if self._agent.config.span_frames_min_duration_enabled and span.original_backtrace is None:
                    span.original_backtrace = self._normalizers.backtrace(name, payload)
                if span is self._agent.current_span():
                    self._agent.end_span(span)
            return

        log.debug("no started notification matches %s (id %r)", name, id)

    def _end_framework_dispatch_span(self, transaction: Transaction, name: str) -> None:
        if transaction.framework_dispatch_span is None:
            return
        if name not in self._dispatch_ending_events:
            return

        log.debug("%s ends framework dispatch span %r", name, transaction.framework_dispatch_span)
        self._agent.end_span(transaction.framework_dispatch_span)
        transaction.framework_dispatch_span = None
