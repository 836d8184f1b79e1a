from collections import ChainMap
import os
from typing import Dict  # noqa:F401
from typing import Optional  # noqa:F401

from envier import Env


class ESConfig(Env):
    """Provides support for loading configurations from the environment and from code."""

    def __init__(
        self,
        source: Optional[Dict[str, str]] = None,
        parent: Optional["Env"] = None,
        dynamic: Optional[Dict[str, str]] = None,
    ) -> None:
        self.env_source = os.environ

        # Order of precedence: provided source < environment variables
        full_source = ChainMap(self.env_source, source or {})

        super().__init__(source=full_source, parent=parent, dynamic=dynamic)
