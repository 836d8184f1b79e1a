"""
Normalizers decide what a notification means for tracing.

Each notification name is routed to one ``Normalizer``, which either returns
``SKIP`` (nothing should be recorded) or the ``(name, type, subtype, action, context)``
of the span to start. Names without a normalizer resolve to ``SKIP``.
"""
from typing import Any
from typing import Dict
from typing import FrozenSet
from typing import Optional
import traceback

from eventspan._trace.normalizers import http  # noqa:F401
from eventspan._trace.normalizers import sql  # noqa:F401
from eventspan._trace.normalizers import template  # noqa:F401
from eventspan._trace.normalizers import web  # noqa:F401
from eventspan._trace.normalizers._base import SKIP  # noqa:F401
from eventspan._trace.normalizers._base import NormalizeResult
from eventspan._trace.normalizers._base import Normalizer
from eventspan._trace.normalizers._base import registered_normalizers
from eventspan.settings.tracing import TracingConfig


class Normalizers(object):
    """The set of normalizers in use, keyed by notification name."""

    def __init__(self, normalizers: Dict[str, Normalizer], default: Normalizer) -> None:
        self._normalizers = normalizers
        self._default = default

    @classmethod
    def build(cls, config: TracingConfig) -> "Normalizers":
        disabled = set(config.disabled_normalizers)
        normalizers = {}
        for normalizer_cls in registered_normalizers():
            instance = normalizer_cls(config)
            for name in normalizer_cls.registers:
                if name not in disabled:
                    normalizers[name] = instance
        return cls(normalizers, Normalizer(config))

    def keys(self) -> FrozenSet[str]:
        return frozenset(self._normalizers)

    def normalize(self, transaction, name: str, payload: Dict[str, Any]) -> NormalizeResult:
        return self._normalizers.get(name, self._default).normalize(transaction, name, payload)

    def backtrace(self, name: str, payload: Dict[str, Any]) -> Optional[traceback.StackSummary]:
        return self._normalizers.get(name, self._default).backtrace(payload)
