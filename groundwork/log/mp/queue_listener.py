"""
Queue listener for receiving log records from worker processes.

Runs in the master, receiving records from worker queue handlers and
dispatching them to the master logger of the same name.
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
import traceback
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from multiprocessing import Queue as QueueType


class LogQueueListener:
    """
    Receives log records from workers and dispatches them to handlers.

    Runs a background daemon thread reading from a multiprocessing.Queue.
    Each record is handled by ``logging.getLogger(record.name)`` in the
    master, so worker records reach the same category transports as the
    master's own records.
    """

    def __init__(self, log_queue: QueueType[logging.LogRecord | None]) -> None:
        self._queue = log_queue
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def start(self) -> None:
        """Start the listener thread (no-op when already running)."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._listen, name="log-queue-listener", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop the listener thread gracefully.

        Sends a sentinel value to unblock the queue and waits for the thread
        to finish.
        """
        self._stop_event.set()
        try:
            self._queue.put_nowait(None)
        except (ValueError, OSError, queue.Full):
            pass  # Queue closed or full; the thread exits on its poll timeout

        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _listen(self) -> None:
        while not self._stop_event.is_set():
            try:
                record = self._queue.get(timeout=0.5)
                if record is None:
                    break
                self._handle_record(record)
            except queue.Empty:
                continue
            except (EOFError, OSError):
                break
            except Exception:
                # Don't let the listener thread die from a bad record
                sys.stderr.write("LogQueueListener: error handling record:\n")
                traceback.print_exc(file=sys.stderr)

    def _handle_record(self, record: logging.LogRecord) -> None:
        """Dispatch a record to the master logger with the same name."""
        logging.getLogger(record.name).handle(record)

    @property
    def is_alive(self) -> bool:
        """Check if the listener thread is running."""
        return self._thread is not None and self._thread.is_alive()
