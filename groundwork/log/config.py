"""
Configuration for the logging system.

Built from the ``loggers`` section of the application configuration::

    loggers:
      console: {level: info, colorize: true, timestamp: true, silent: false}
      app: {filename: /var/log/app.log}
      access: {filename: /var/log/access.log}
      error: {filename: /var/log/error.log}
      categories:
        app: [console, app, error]
        access: [access]
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from ..dot_dict import DotDict
from .constants import LogConstants
from .exceptions import InvalidLogLevelError, InvalidTransportSpecError


def resolve_level(level: int | str | bool) -> int | bool:
    """
    Resolve a log level name or number.

    Returns ``False`` for ``"none"``/``"false"``/``False`` (logging disabled).

    Raises:
        InvalidLogLevelError: If the name is unknown
    """
    if isinstance(level, bool):
        if level:
            raise InvalidLogLevelError(level)
        return False
    if isinstance(level, int):
        return level
    try:
        return LogConstants.LEVEL_NAMES[str(level).lower()]
    except KeyError:
        raise InvalidLogLevelError(level) from None


def apply_transport_spec(
    categories: dict[str, list[str]], spec: str
) -> dict[str, list[str]]:
    """
    Apply a ``--log-transports`` spec to a category mapping.

    The spec has the form ``category=[-|+]transport[;...][,...]``; ``-``
    removes a transport from the category, ``+`` (or no prefix) adds it.
    Unknown categories are created.

    Example:
        >>> apply_transport_spec({"app": ["console"]}, "access=+console,app=-console")
        {'app': [], 'access': ['console']}
    """
    result = copy.deepcopy(categories)
    for entry in filter(None, (part.strip() for part in spec.split(","))):
        if "=" not in entry:
            raise InvalidTransportSpecError("expected category=transports", entry=entry)
        name, transports = entry.split("=", 1)
        current = result.setdefault(name.strip(), [])
        for transport in filter(None, (t.strip() for t in transports.split(";"))):
            if transport.startswith("-"):
                if transport[1:] in current:
                    current.remove(transport[1:])
                continue
            transport = transport.lstrip("+")
            if transport not in current:
                current.append(transport)
    return result


@dataclass
class LogConfig:
    """Resolved logging settings."""

    level: int | bool = logging.INFO
    colors: bool = True
    timestamps: bool = True
    silent: bool = False
    files: dict[str, str | None] = field(default_factory=dict)
    categories: dict[str, list[str]] = field(
        default_factory=lambda: {
            LogConstants.APP: [LogConstants.CONSOLE, LogConstants.APP, LogConstants.ERROR],
            LogConstants.ACCESS: [LogConstants.ACCESS],
        }
    )

    @classmethod
    def from_config(cls, config: DotDict) -> "LogConfig":
        """Build from the ``loggers`` section of the application config."""
        loggers = config.get("loggers")
        data: dict[str, Any] = loggers.to_dict() if isinstance(loggers, DotDict) else {}
        console = data.get(LogConstants.CONSOLE) or {}

        level = resolve_level(console.get("level", "info"))
        files = {
            name: (data.get(name) or {}).get("filename")
            for name in (LogConstants.APP, LogConstants.ACCESS, LogConstants.ERROR)
        }
        categories = {
            name: list(transports or [])
            for name, transports in (data.get("categories") or {}).items()
        }
        return cls(
            level=level,
            colors=bool(console.get("colorize", True)),
            timestamps=bool(console.get("timestamp", True)),
            silent=bool(console.get("silent", False)) or level is False,
            files=files,
            categories=categories or cls().categories,
        )
