"""
Shutdown manager for handling termination signals.

SIGTERM exits cleanly by raising ``SystemExit(0)`` in the main thread, so
``finally`` blocks (such as the supervisor telling workers to exit) still
run. Duplicate signals during shutdown are ignored. SIGINT keeps Python's
default ``KeyboardInterrupt`` behavior.
"""

import signal
from typing import Any


class ShutdownManager:
    """
    Manages shutdown signal handling.

    Usage:
        manager = ShutdownManager()
        manager.register_signal_handlers()
    """

    def __init__(self) -> None:
        self._shutting_down = False
        self._original_handlers: dict[signal.Signals, Any] = {}

    def register_signal_handlers(self) -> None:
        """Register the SIGTERM handler, remembering the previous one."""
        self._original_handlers[signal.SIGTERM] = signal.signal(
            signal.SIGTERM, self._handle_signal
        )

    def restore_signal_handlers(self) -> None:
        """Restore the handlers that were active before registration."""
        for signum, handler in self._original_handlers.items():
            signal.signal(signum, handler)
        self._original_handlers.clear()

    def _handle_signal(self, signum: int, frame: Any) -> None:
        """
        Handle SIGTERM by raising SystemExit(0).

        Args:
            signum: Signal number
            frame: Current stack frame (unused)
        """
        if self._shutting_down:
            return  # Ignore duplicate signals

        self._shutting_down = True
        raise SystemExit(0)

    def is_shutting_down(self) -> bool:
        """Check if shutdown is in progress."""
        return self._shutting_down

