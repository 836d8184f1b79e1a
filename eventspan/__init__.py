from eventspan._version import __version__  # noqa:F401
from eventspan._trace.agent import Agent  # noqa:F401
from eventspan._trace.span import Span  # noqa:F401
from eventspan._trace.subscriber import NotificationSubscriber  # noqa:F401
from eventspan._trace.transaction import Transaction  # noqa:F401
from eventspan.internal.request_metrics import RequestMetrics  # noqa:F401


__all__ = [
    "__version__",
    "Agent",
    "NotificationSubscriber",
    "RequestMetrics",
    "Span",
    "Transaction",
]
