"""
Logger class for the logging system.

Extends the standard Python logger with structured ``extra`` fields that the
formatters render as ``[key:value]`` pairs, and a custom TRACE level.
"""

import collections
import logging
import sys
from typing import Any

from .constants import LogConstants

# Record attribute holding the merged extra fields
EXTRA_ATTR = "__groundwork__extra"


class Logger(logging.Logger):
    """
    Enhanced logger with structured extra fields.

    Extends the standard Python logger with:
    - Pre-populated extra fields merged into every record
    - Extra fields kept on the record for field-style formatting
    - A custom ``trace()`` method below DEBUG
    """

    def __init__(
        self,
        name: str,
        level: int = logging.NOTSET,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(name, level)
        self._extra = extra or {}

    def _merge_extra(self, extra: dict[str, Any] | None) -> dict[str, Any]:
        """Merge pre-populated extra fields with per-call extra fields."""
        merged: dict[str, Any]
        if isinstance(extra, collections.OrderedDict):
            merged = collections.OrderedDict(self._extra)
        else:
            merged = self._extra.copy()
        if extra:
            merged.update(extra)
        return merged

    def makeRecord(
        self,
        name: str,
        level: int,
        fn: str,
        lno: int,
        msg: object,
        args: Any,
        exc_info: Any,
        func: str | None = None,
        extra: dict[str, Any] | None = None,
        sinfo: str | None = None,
    ) -> logging.LogRecord:
        """Create log record, attaching merged extra fields."""
        merged = self._merge_extra(extra)
        record = super().makeRecord(
            name, level, fn, lno, msg, args, exc_info, func=func, sinfo=sinfo
        )
        setattr(record, EXTRA_ATTR, merged)
        return record

    def trace(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """
        Log a TRACE level message.

        Args:
            msg: Log message
            *args: Message format arguments
            **kwargs: Additional keyword arguments including 'extra' for structured data
        """
        trace_level = LogConstants.CUSTOM_LEVELS["TRACE"]
        if self.isEnabledFor(trace_level):
            self._log(trace_level, msg, args, **kwargs)

    def _log(self, level: int, msg: object, args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        try:
            super()._log(level, msg, args, **kwargs)
        except (TypeError, ValueError) as e:
            # Log to stderr so format bugs don't go unnoticed
            sys.stderr.write(
                f"LOG_FORMAT_ERROR [{self.name}]: {e.__class__.__name__}: {e} "
                f"| msg={msg!r} args={args!r}\n"
            )

    def derive(self, name: str, extra: dict[str, Any] | None = None) -> "Logger":
        """
        Create a child logger sharing this logger's handlers.

        Args:
            name: Child name, appended as ``<parent>/<name>``
            extra: Extra fields added to every record of the child
        """
        child = Logger(f"{self.name}/{name}", self.level, {**self._extra, **(extra or {})})
        child.parent = self
        child.propagate = True
        return child
