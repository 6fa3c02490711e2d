"""
Factory for creating and configuring category loggers.

Each category (``app``, ``access``, ...) is a :class:`Logger` whose handlers
are the transports listed for it in ``loggers.categories``. The ``app``
category is the ``groundwork`` logger itself, so module loggers created with
``logging.getLogger("groundwork.<module>")`` propagate into it. Other
categories are ``groundwork.<category>`` and do not propagate.
"""

import logging
import sys
from multiprocessing import Queue

from .config import LogConfig
from .constants import LogConstants
from .formatters import AccessFormatter, LogFormatter
from .logger import Logger
from .mp import MPQueueHandler

ROOT_NAME = "groundwork"

# Transports that write to a file and the minimum level they accept
_FILE_TRANSPORT_LEVELS = {
    LogConstants.APP: logging.INFO,
    LogConstants.ACCESS: logging.INFO,
    LogConstants.ERROR: logging.ERROR,
}


def category_logger_name(category: str) -> str:
    """Return the logger name backing a category."""
    if category == LogConstants.APP:
        return ROOT_NAME
    return f"{ROOT_NAME}.{category}"


class LoggerFactory:
    """
    Creates transports and wires them to category loggers.

    Example:
        factory = LoggerFactory(LogConfig.from_config(config))
        factory.configure()
        factory.get("access").info("GET / 200")
    """

    def __init__(self, config: LogConfig) -> None:
        self._config = config
        self._transports: dict[str, logging.Handler] = {}
        self._loggers: dict[str, Logger] = {}

    @property
    def config(self) -> LogConfig:
        return self._config

    @property
    def transports(self) -> dict[str, logging.Handler]:
        return dict(self._transports)

    def _create_transport(self, name: str) -> logging.Handler | None:
        """Create a transport handler, or None when it is not configured."""
        if name == LogConstants.CONSOLE:
            if self._config.silent:
                return None
            handler: logging.Handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(self._config.level)  # type: ignore[arg-type]
            handler.setFormatter(
                LogFormatter(colors=self._config.colors, timestamps=self._config.timestamps)
            )
            return handler

        filename = self._config.files.get(name)
        if not filename:
            return None
        handler = logging.FileHandler(filename, encoding="utf-8")
        handler.setLevel(_FILE_TRANSPORT_LEVELS.get(name, logging.INFO))
        if name == LogConstants.ACCESS:
            handler.setFormatter(AccessFormatter())
        else:
            handler.setFormatter(LogFormatter(colors=False, timestamps=True))
        return handler

    def _transport(self, name: str) -> logging.Handler | None:
        if name not in self._transports:
            handler = self._create_transport(name)
            if handler is None:
                return None
            self._transports[name] = handler
        return self._transports[name]

    def configure(self) -> dict[str, Logger]:
        """
        Create (or reconfigure) every category logger.

        Returns:
            Mapping of category name to logger
        """
        logging.setLoggerClass(Logger)
        for category, transport_names in self._config.categories.items():
            lg = self._logger_for(category)
            for handler in list(lg.handlers):
                lg.removeHandler(handler)

            handlers = [h for h in map(self._transport, transport_names) if h is not None]
            for handler in handlers:
                lg.addHandler(handler)
            levels = [h.level for h in handlers]
            lg.setLevel(min(levels) if levels else logging.CRITICAL + 1)
            self._loggers[category] = lg
        return dict(self._loggers)

    def _logger_for(self, category: str) -> Logger:
        name = category_logger_name(category)
        lg = logging.getLogger(name)
        lg.propagate = False
        return lg  # type: ignore[return-value]

    def get(self, category: str) -> Logger:
        """Get the logger for a category, creating an unconfigured one if needed."""
        if category not in self._loggers:
            self._loggers[category] = self._logger_for(category)
        return self._loggers[category]

    def attach_queue(self, queue: "Queue[logging.LogRecord | None]") -> None:
        """
        Route every category through a multiprocessing queue.

        Used in worker processes: local transports are detached (the master
        owns them) and records are sent to the master's listener instead.
        """
        handler = MPQueueHandler(queue)
        for lg in self._loggers.values():
            for existing in list(lg.handlers):
                lg.removeHandler(existing)
            lg.addHandler(handler)
        self._transports = {}

    def close(self) -> None:
        """Flush and close every transport."""
        for handler in self._transports.values():
            handler.flush()
            handler.close()
        self._transports = {}
