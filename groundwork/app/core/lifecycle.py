"""
Process lifecycle control.

Configures a master or worker process once at start: process title, SIGTERM
handling and the uncaught-fault handler.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import os
import sys
import threading
from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any

from setproctitle import setproctitle

from ...config.schemas import ServerConfig
from .shutdown import ShutdownManager

logger = logging.getLogger("groundwork.lifecycle")

MODE_ENV = "GROUNDWORK_MODE"


class ProcessRole(enum.Enum):
    MASTER = "master"
    WORKER = "worker"


def is_test_mode(environ: Mapping[str, str] | None = None) -> bool:
    """Whether the process runs in test execution mode (``GROUNDWORK_MODE=test``)."""
    env = os.environ if environ is None else environ
    return env.get(MODE_ENV) == "test"


def process_title(template: str, argv: list[str] | None = None) -> str:
    """Build a process title from a template and the command-line arguments."""
    args = " ".join(sys.argv[1:] if argv is None else argv)
    return f"{template} {args}" if args else template


class FaultHandler:
    """
    Handles uncaught errors by logging them and exiting with status 1.

    Covers the main thread (``sys.excepthook``), other threads
    (``threading.excepthook``) and, when given, an asyncio event loop. The
    previous hooks are restored before logging, so a failure while handling
    does not recurse.
    """

    def __init__(self, exit_func: Callable[[int], Any] = os._exit) -> None:
        self._exit = exit_func
        self._installed = False
        self._prev_excepthook: Callable[..., Any] | None = None
        self._prev_threading_hook: Callable[..., Any] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._prev_loop_handler: Callable[..., Any] | None = None

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        if not self._installed:
            self._prev_excepthook = sys.excepthook
            self._prev_threading_hook = threading.excepthook
            sys.excepthook = self._excepthook
            threading.excepthook = self._threading_hook
            self._installed = True
        if loop is not None:
            self._loop = loop
            self._prev_loop_handler = loop.get_exception_handler()
            loop.set_exception_handler(self._loop_handler)

    def uninstall(self) -> None:
        """Restore the hooks that were active before :meth:`install`."""
        if not self._installed:
            return
        sys.excepthook = self._prev_excepthook or sys.__excepthook__
        threading.excepthook = self._prev_threading_hook or threading.__excepthook__
        if self._loop is not None and not self._loop.is_closed():
            self._loop.set_exception_handler(self._prev_loop_handler)
        self._loop = None
        self._installed = False

    def _fault(self, exc: BaseException | None, where: str) -> None:
        self.uninstall()
        logger.critical(
            "uncaught error, exiting",
            extra={"where": where, "exception": exc},
            exc_info=(type(exc), exc, exc.__traceback__) if exc is not None else None,
        )
        # Closing waits for queued records to reach the master
        for handler in logging.getLogger("groundwork").handlers:
            handler.flush()
            handler.close()
        self._exit(1)

    def _excepthook(
        self,
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc, tb)
            return
        self._fault(exc, "main")

    def _threading_hook(self, args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit:
            return
        self._fault(args.exc_value, args.thread.name if args.thread else "thread")

    def _loop_handler(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        if exc is None:
            # Not an error (e.g. a warning about an unclosed resource)
            logger.warning("event loop issue", extra={"detail": context.get("message")})
            return
        self._fault(exc, "loop")


class ProcessLifecycle:
    """
    Configures process-wide behavior for a master or worker.

    Example:
        lifecycle = ProcessLifecycle(ProcessRole.MASTER, server_config)
        lifecycle.configure()
    """

    def __init__(
        self,
        role: ProcessRole,
        config: ServerConfig,
        test_mode: bool | None = None,
        set_title: Callable[[str], None] = setproctitle,
    ) -> None:
        self.role = role
        self._config = config
        self._test_mode = is_test_mode() if test_mode is None else test_mode
        self._set_title = set_title
        self.shutdown = ShutdownManager()
        self.faults = FaultHandler()

    @property
    def test_mode(self) -> bool:
        return self._test_mode

    @property
    def title(self) -> str:
        template = (
            self._config.master_title
            if self.role is ProcessRole.MASTER
            else self._config.worker_title
        )
        return process_title(template)

    def configure(self) -> None:
        """Set the process title and install signal and fault handlers."""
        self._set_title(self.title)
        if threading.current_thread() is threading.main_thread():
            self.shutdown.register_signal_handlers()
        if not self._test_mode:
            self.faults.install()
        logger.debug(
            "configured process",
            extra={"role": self.role.value, "title": self.title, "test_mode": self._test_mode},
        )

    def attach_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Route uncaught event loop errors to the fault handler."""
        if not self._test_mode:
            self.faults.install(loop)

    def reset(self) -> None:
        """Undo :meth:`configure`."""
        self.faults.uninstall()
        self.shutdown.restore_signal_handlers()
