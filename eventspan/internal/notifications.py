"""
The notification bus instrumented code reports to.

Libraries (or integrations wrapping them) announce the start and the finish of
interesting operations, and listeners react to them without either side knowing
about the other::

    from eventspan.internal import notifications

    with notifications.instrument("sql.sqlalchemy", {"sql": statement, "dialect": "postgresql"}):
        cursor.execute(statement)

Every ``instrument`` block gets a fresh correlation id; the matching ``on_start``
and ``on_finish`` calls of a listener receive the same id. Blocks nest, so a
listener sees the finishes in the reverse order of the starts.

Listeners subscribe with a pattern, either a compiled regular expression
(searched in the notification name), an exact name, or ``None`` for everything::

    class Printer:
        def on_start(self, name, id, payload):
            print("start", name, id)

        def on_finish(self, name, id, payload):
            print("finish", name, id)

    subscription = notifications.subscribe(re.compile(r"\\.sqlalchemy$"), Printer())
    ...
    notifications.unsubscribe(subscription)
"""
from contextlib import contextmanager
import itertools
import threading
from typing import Any
from typing import Dict
from typing import Hashable
from typing import Iterator
from typing import Optional
from typing import Pattern
from typing import Tuple
from typing import Union

from eventspan.internal.logger import get_logger


log = get_logger(__name__)

_ids = itertools.count(1)


class Subscription(object):
    """Token returned by ``Notifier.subscribe``, to hand back to ``Notifier.unsubscribe``."""

    __slots__ = ("pattern", "listener")

    def __init__(self, pattern: Union[Pattern, str, None], listener: Any) -> None:
        self.pattern = pattern
        self.listener = listener

    def matches(self, name: str) -> bool:
        if self.pattern is None:
            return True
        if isinstance(self.pattern, str):
            return self.pattern == name
        return self.pattern.search(name) is not None

    def __repr__(self) -> str:
        return "<Subscription(pattern=%r, listener=%r)>" % (self.pattern, self.listener)


class Notifier(object):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        # copy-on-write so that delivery never holds the lock
        self._subscriptions: Tuple[Subscription, ...] = ()

    def subscribe(self, pattern: Union[Pattern, str, None], listener: Any) -> Subscription:
        subscription = Subscription(pattern, listener)
        with self._lock:
            self._subscriptions = self._subscriptions + (subscription,)
        log.debug("subscribed %r", subscription)
        return subscription

    def unsubscribe(self, subscription: Optional[Subscription]) -> None:
        if subscription is None:
            return
        with self._lock:
            self._subscriptions = tuple(s for s in self._subscriptions if s is not subscription)

    def reset(self) -> None:
        with self._lock:
            self._subscriptions = ()

    def listeners_for(self, name: str) -> Tuple[Any, ...]:
        return tuple(s.listener for s in self._subscriptions if s.matches(name))

    def has_listeners(self, name: str) -> bool:
        return any(s.matches(name) for s in self._subscriptions)

    def start(self, name: str, id: Hashable, payload: Dict[str, Any]) -> None:
        for listener in self.listeners_for(name):
            listener.on_start(name, id, payload)

    def finish(self, name: str, id: Hashable, payload: Dict[str, Any]) -> None:
        for listener in reversed(self.listeners_for(name)):
            listener.on_finish(name, id, payload)

    @contextmanager
    def instrument(self, name: str, payload: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        """Report the block as a notification called ``name``.

        An exception raised by the block is stored in the payload under ``exception``
        before the finish is delivered, then re-raised.
        """
        if payload is None:
            payload = {}
        id = next(_ids)
        self.start(name, id, payload)
        try:
            yield payload
        except BaseException as e:
            payload["exception"] = e
            raise
        finally:
            self.finish(name, id, payload)


notifier = Notifier()

subscribe = notifier.subscribe
unsubscribe = notifier.unsubscribe
instrument = notifier.instrument
