class ConfigException(Exception):
    """Raised when a configuration value cannot be interpreted."""

    pass
