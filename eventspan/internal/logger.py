"""
Logging utilities for internal use.
Usage:
    from eventspan.internal.logger import get_logger
    log = get_logger(__name__)

    log.debug("subscriber registered for %s", pattern)

Every logger returned by ``get_logger`` carries a rate limiting filter: a given call site
(pathname and line number) is emitted at most once every ``EVENTSPAN_LOGGING_RATE`` seconds
(60 by default). The number of records dropped in the meantime is appended to the next emitted
record, e.g.::

    WARNING unable to parse request start header 't=abc' [12 skipped]

``EVENTSPAN_LOGGING_RATE=0`` disables rate limiting, as does setting a logger to ``DEBUG``.
"""

import collections
import logging
import os
import time
from typing import DefaultDict
from typing import Tuple


logging.basicConfig()

SECOND = 1
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE


def get_logger(name: str) -> logging.Logger:
    """
    Retrieve or create a ``Logger`` instance with consistent behavior for internal use.

    Configure all loggers with a rate limiter filter to prevent excessive logging.

    """
    logger = logging.getLogger(name)
    # addFilter will only add the filter if it is not already present
    logger.addFilter(log_filter)
    logger.propagate = True
    return logger


# Class used for keeping track of a log lines current time bucket and the number of log lines skipped
class LoggingBucket:
    def __init__(self, bucket: float, skipped: int):
        self.bucket = bucket
        self.skipped = skipped

    def __repr__(self):
        return f"LoggingBucket({self.bucket}, {self.skipped})"

    def is_sampled(self, record: logging.LogRecord, rate: float) -> bool:
        """
        Determine if the log line should be sampled based on the rate limit.
        """
        current = time.monotonic()
        if current - self.bucket >= rate:
            self.bucket = current
            record.skipped = self.skipped
            self.skipped = 0
            return True
        self.skipped += 1
        return False


_MINF = float("-inf")

# Dict to keep track of the current time bucket per pathname/lineno
_buckets: DefaultDict[Tuple[str, int], LoggingBucket] = collections.defaultdict(lambda: LoggingBucket(_MINF, 0))

# Allow 1 log record per pathname/lineno every 60 seconds by default
# DEV: `EVENTSPAN_LOGGING_RATE=0` means to disable all rate limiting
_rate_limit = int(os.getenv("EVENTSPAN_LOGGING_RATE", default=60))


def log_filter(record: logging.LogRecord) -> bool:
    """
    Function used to determine if a log record should be outputted or not (True = output, False = skip).

    This function will:
      - Rate limit log records based on the record filename and line number
    """
    logger = logging.getLogger(record.name)
    if not _rate_limit or logger.getEffectiveLevel() == logging.DEBUG:
        return True
    key = (record.pathname, record.lineno)
    return _buckets[key].is_sampled(record, _rate_limit)


class EventSpanFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        skipped = getattr(record, "skipped", 0)
        skip_str = f" [{skipped} skipped]" if skipped else ""
        return f"{record.levelname} {super().format(record)}{skip_str}"


# setup the default formatter for all eventspan loggers
root_logger = logging.getLogger("eventspan")
root_logger.handlers.append(logging.StreamHandler())
root_logger.handlers[0].setFormatter(EventSpanFormatter())
root_logger.propagate = True
