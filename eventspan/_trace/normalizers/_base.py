import contextlib
import os
import traceback
from typing import TYPE_CHECKING
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import Type
from typing import Union


if TYPE_CHECKING:  # pragma: no cover
    from eventspan._trace.transaction import Transaction
    from eventspan.settings.tracing import TracingConfig


class _Skip(object):
    __slots__ = ()

    def __repr__(self) -> str:
        return "SKIP"

    def __reduce__(self):
        return "SKIP"


SKIP = _Skip()

Normalized = Tuple[str, str, Optional[str], Optional[str], Optional[Dict[str, Any]]]
NormalizeResult = Union[_Skip, Normalized]

_registry: List[Type["Normalizer"]] = []

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def _is_instrumentation_frame(filename: str) -> bool:
    return filename.startswith(_PACKAGE_DIR) or filename == contextlib.__file__


def capture_backtrace() -> traceback.StackSummary:
    """Capture the stack of the caller, leaving out the frames of the instrumentation itself."""
    return traceback.StackSummary.from_list(
        [frame for frame in traceback.extract_stack() if not _is_instrumentation_frame(frame.filename)]
    )


class Normalizer(object):
    """Translate one family of notifications into span metadata.

    Subclasses that define ``registers`` are automatically collected, every name in
    ``registers`` is then routed to an instance of the subclass::

        class CacheReadNormalizer(Normalizer):
            registers = ("cache_read.django",)

            def normalize(self, transaction, name, payload):
                return ("cache read", "cache", "django", "get", None)
    """

    registers: Sequence[str]

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)

        if "registers" in cls.__dict__:
            _registry.append(cls)

    def __init__(self, config: "TracingConfig") -> None:
        self.config = config

    def normalize(self, transaction: "Transaction", name: str, payload: Dict[str, Any]) -> NormalizeResult:
        return SKIP

    def backtrace(self, payload: Dict[str, Any]) -> Optional[traceback.StackSummary]:
        return None


def registered_normalizers() -> List[Type[Normalizer]]:
    return list(_registry)
