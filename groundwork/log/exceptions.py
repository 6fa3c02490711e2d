"""
Exceptions raised by the logging system.
"""

from ..exceptions import ConfigError


class LogError(ConfigError):
    """Base class for logging configuration errors."""

    pass


class InvalidLogLevelError(LogError):
    """Raised when a log level name cannot be resolved."""

    def __init__(self, level: object) -> None:
        super().__init__(f"invalid log level: {level!r}", level=level)
        self.level = level


class InvalidTransportSpecError(LogError):
    """Raised when a ``--log-transports`` spec cannot be parsed."""

    pass
