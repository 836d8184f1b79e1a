from eventspan.settings.exceptions import ConfigException  # noqa:F401
from eventspan.settings.tracing import TracingConfig  # noqa:F401
