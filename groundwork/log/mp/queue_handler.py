"""
Multiprocessing-safe queue handler.

Prepares log records for pickling before they cross the process boundary:
tracebacks and exception objects in extra fields are rendered to strings.
"""

from __future__ import annotations

import logging
import multiprocessing.queues
import sys
import traceback
from typing import TYPE_CHECKING, Any

from ..logger import EXTRA_ATTR

if TYPE_CHECKING:
    from multiprocessing import Queue as QueueType


class MPQueueHandler(logging.Handler):
    """
    Queue handler used in worker processes.

    Unlike Python's standard QueueHandler, this handler properly handles:
    - Exception tracebacks (formatted to string before pickling)
    - Exception objects passed as ``extra={"exception": e}``
    - Format arguments that may not be picklable
    """

    def __init__(self, queue: QueueType[logging.LogRecord | None]) -> None:
        super().__init__()
        self.queue = queue

    def close(self) -> None:
        """
        Close the handler and its queue.

        Blocks until the queue's feeder thread has written every buffered
        record to the pipe, so records logged right before ``os._exit`` still
        reach the master.
        """
        if isinstance(self.queue, multiprocessing.queues.Queue):
            self.queue.close()
            self.queue.join_thread()
        super().close()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(self._prepare(record))
        except Exception:
            self.handleError(record)

    def _prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        """
        Prepare a record for cross-process pickling.

        Args:
            record: Log record to prepare

        Returns:
            Prepared log record safe for pickling
        """
        # Format exception to string while we have the traceback context
        if record.exc_info:
            record.exc_text = self._format_exc_info(record.exc_info)
            record.exc_info = None

        self._prepare_extra(record)

        # Format args into message (args might contain unpicklable objects)
        try:
            record.msg = record.getMessage()
        finally:
            record.args = None

        return record

    def _prepare_extra(self, record: logging.LogRecord) -> None:
        """Replace exception objects in extra fields with formatted strings."""
        extra = getattr(record, EXTRA_ATTR, None)
        if not extra:
            return

        prepared = {}
        for key, value in extra.items():
            if key == "exception" and isinstance(value, BaseException):
                prepared["exception_formatted"] = self._format_exception_in_context(value)
            elif isinstance(value, (str, int, float, bool, type(None), list, tuple, dict)):
                prepared[key] = value
            else:
                prepared[key] = repr(value)
        setattr(record, EXTRA_ATTR, prepared)

    def _format_exc_info(self, exc_info: Any) -> str:
        if exc_info[0] is None:
            return ""
        return "".join(traceback.format_exception(*exc_info))

    def _format_exception_in_context(self, exc: BaseException) -> str:
        """
        Format an exception with traceback if we're in the exception context.

        If the exception is the one currently being handled, its full
        traceback is available; otherwise only the exception itself is
        formatted.
        """
        current = sys.exc_info()
        if current[1] is exc:
            return "".join(traceback.format_exception(*current))
        if exc.__traceback__ is not None:
            return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return f"{exc.__class__.__name__}: {exc}"
