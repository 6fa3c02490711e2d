"""
Logging for groundwork applications.

Extends Python's standard logging with:
- A custom TRACE level below DEBUG
- Structured extra fields rendered as ``[key:value]``
- Named categories (``app``, ``access``) mapped to transports
  (``console``, ``app``, ``access``, ``error``)
- Multiprocessing support: workers forward records to the master

Log Level Control:
- Use standard levels: debug, info, warning, error, critical
- Use the custom level: trace
- Silence the console: "none" or ``--silent``
"""

import logging

from .config import LogConfig, apply_transport_spec, resolve_level
from .constants import LogConstants
from .exceptions import InvalidLogLevelError, InvalidTransportSpecError, LogError
from .factory import LoggerFactory, category_logger_name
from .formatters import LogFormatter
from .logger import Logger
from .mp import LogQueueListener, MPQueueHandler

logging.TRACE = LogConstants.CUSTOM_LEVELS["TRACE"]  # type: ignore[attr-defined]
logging.addLevelName(logging.TRACE, "TRACE")  # type: ignore[attr-defined]
LogConstants.LEVEL_NAMES["trace"] = logging.TRACE  # type: ignore[attr-defined]

# Module loggers (logging.getLogger("groundwork.<module>")) get structured extras
logging.setLoggerClass(Logger)

_factory: LoggerFactory | None = None


def init(config: LogConfig) -> LoggerFactory:
    """
    Configure category loggers from a resolved logging config.

    Calling it again closes the previous transports and reconfigures.
    """
    global _factory
    if _factory is not None:
        _factory.close()
    _factory = LoggerFactory(config)
    _factory.configure()
    return _factory


def get_factory() -> LoggerFactory | None:
    """Return the active factory, or None before :func:`init`."""
    return _factory


def get_logger(category: str = LogConstants.APP) -> Logger:
    """
    Get the logger for a category.

    Before :func:`init` this returns the unconfigured category logger, so
    records go wherever stdlib logging sends them.
    """
    if _factory is not None:
        return _factory.get(category)
    return logging.getLogger(category_logger_name(category))  # type: ignore[return-value]


__all__ = [
    "InvalidLogLevelError",
    "InvalidTransportSpecError",
    "LogConfig",
    "LogConstants",
    "LogError",
    "LogFormatter",
    "LogQueueListener",
    "Logger",
    "LoggerFactory",
    "MPQueueHandler",
    "apply_transport_spec",
    "get_factory",
    "get_logger",
    "init",
    "resolve_level",
]
