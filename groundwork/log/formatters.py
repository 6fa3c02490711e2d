"""
Log formatters for the logging system.

Records render as::

    [12:34:56,789] [I] worker started          [pid:1234] [1234] [app]
"""

import collections
import logging
from typing import Any

from .colors import ColorManager
from .constants import LogConstants
from .logger import EXTRA_ATTR

# Traceback text forwarded from a worker, printed below the record
FORWARDED_EXCEPTION = "exception_formatted"


def _format_value(value: Any) -> str:
    if isinstance(value, BaseException):
        return value.__class__.__name__
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    if isinstance(value, dict):
        return ",".join(f"{k}={v}" for k, v in value.items())
    return str(value)


def _extra_items(record: logging.LogRecord) -> list[tuple[str, Any]]:
    extra = getattr(record, EXTRA_ATTR, None)
    if not extra:
        return []
    keys = extra.keys()
    if not isinstance(extra, collections.OrderedDict):
        keys = sorted(keys)
    return [(key, extra[key]) for key in keys if key != FORWARDED_EXCEPTION]


class LogFormatter(logging.Formatter):
    """
    Formatter rendering message, extra fields, pid and logger name.

    Args:
        colors: Emit ANSI colors per level
        timestamps: Prefix records with the time they were created
    """

    def __init__(self, colors: bool = False, timestamps: bool = True) -> None:
        super().__init__()
        self.colors = colors
        self.timestamps = timestamps

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        prefix = ""
        if self.timestamps:
            prefix = f"[{self.formatTime(record)}] "
        level = f"[{record.levelname[:1]}]"

        head = f"{prefix}{level} {message}"
        pad = " " * max(1, LogConstants.DEFAULT_RULE_WIDTH - len(head))
        fields = " ".join(f"[{k}:{_format_value(v)}]" for k, v in _extra_items(record))
        meta = f"[{record.process}] [{record.name}]"

        if self.colors:
            col = ColorManager.get_color_for_level(record.levelno)
            gray = ColorManager.create_gray_level(9)
            reset = ColorManager.RESET
            head = f"{col}m{prefix}{level} {col};1m{message}{reset}"
            if fields:
                fields = f"{col}m{fields}{reset}"
            meta = f"{gray}m{meta}{reset}"

        line = head + pad + (fields + " " if fields else "") + meta

        exc_text = self._exception_text(record)
        if exc_text:
            line += "\n" + exc_text
        return line

    def _exception_text(self, record: logging.LogRecord) -> str:
        if record.exc_info:
            if not record.exc_text:
                record.exc_text = self.formatException(record.exc_info)
            return record.exc_text
        if record.exc_text:
            return record.exc_text
        # Set by the multiprocessing queue handler in workers
        extra = getattr(record, EXTRA_ATTR, None) or {}
        return str(extra.get(FORWARDED_EXCEPTION, ""))


class AccessFormatter(logging.Formatter):
    """Plain formatter for access log files: timestamp and message only."""

    def __init__(self) -> None:
        super().__init__("[%(asctime)s] %(message)s")
