"""
The WSGI middleware starts a transaction for every request an application serves::

    from eventspan import Agent
    from eventspan.contrib.wsgi import EventSpanMiddleware

    agent = Agent()
    application = EventSpanMiddleware(application, agent)

The request timing metrics (request id, body size, queue time) of each request are
available on ``transaction.request_metrics``.
"""
from .wsgi import EventSpanMiddleware  # noqa:F401
from .wsgi import end_transaction  # noqa:F401


__all__ = ["EventSpanMiddleware", "end_transaction"]
