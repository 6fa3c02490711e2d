"""
Worker runtime.

Startup order in a worker::

    build server (pipeline stages)
    start listeners
    drop privileges (not in development or test mode)
    send ReadyMessage to the master
    load modules, strictly in sequence
    emit "start"       (a listener may raise to abort startup)
    open the readiness gate
    emit "started"
    call the completion callback

The worker then serves until the master asks it to exit, its pipe closes or
it receives SIGTERM.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
import threading
from collections.abc import Callable
from multiprocessing.connection import Connection
from typing import TYPE_CHECKING, Any

from ... import time as gwtime
from ...config.defaults import DEVELOPMENT_ENVIRONMENT
from ...config.schemas import ServerConfig, UserConfig
from ..builder.hook import ExtensionPoints
from ..builder.stages import STARTED_EVENT, build_server
from ..core.context import AppContext
from ..core.lifecycle import ProcessLifecycle, ProcessRole
from ..http.listeners import BoundSockets, Listeners
from ..http.server import WebServer
from ..modules.loader import ModuleLoader
from .ipc import ExitMessage, Message, ReadyMessage, decode
from .privileges import drop_privileges

if TYPE_CHECKING:
    from multiprocessing import Queue

    from ...config import Config

logger = logging.getLogger("groundwork.worker")

DoneCallback = Callable[[BaseException | None], Any]


class WorkerRuntime:
    """
    Runs the startup sequence and serves requests in a worker.

    Args:
        config: Layered configuration (passed to modules)
        server_config: Frozen server configuration
        sockets: Listening sockets inherited from the master
        conn: Worker end of the master pipe (None when unsupervised)
        events: Extension points shared with the application
        done: Completion callback receiving None or the startup error
        test_mode: Skip the privilege drop
        start_time: Monotonic time the process started, for the startup log
    """

    def __init__(
        self,
        config: Config,
        server_config: ServerConfig,
        sockets: BoundSockets,
        conn: Connection | None = None,
        events: ExtensionPoints | None = None,
        done: DoneCallback | None = None,
        test_mode: bool = False,
        start_time: float | None = None,
        loader: ModuleLoader | None = None,
        drop: Callable[[UserConfig], Any] = drop_privileges,
    ) -> None:
        self._server_config = server_config
        self._conn = conn
        self._done = done
        self._test_mode = test_mode
        self._start_time = start_time if start_time is not None else gwtime.start()
        self._loader = loader or ModuleLoader()
        self._drop = drop
        self._stopped = asyncio.Event()
        self.server = WebServer(server_config)
        self.app = AppContext(
            config,
            server_config,
            events=events,
            server=self.server,
            exit_handler=self.request_exit,
        )
        self.listeners = Listeners(server_config, sockets)

    def send(self, message: Message) -> None:
        """Send a message to the master (no-op when unsupervised)."""
        if self._conn is not None:
            self._conn.send(message.encode())

    def request_exit(self, status: int | None = None) -> None:
        """Ask the master to exit with ``status``."""
        logger.info("requesting master exit", extra={"status": status})
        self.send(ExitMessage(status))

    def stop(self) -> None:
        """Stop serving; :meth:`serve` returns once listeners are closed."""
        self._stopped.set()

    async def start(self) -> None:
        """
        Run the startup sequence.

        Raises:
            Exception: The first startup error (stage, listener, module or
                ``start`` listener failure)
        """
        config = self._server_config
        await build_server(self.server, self.app)
        await self.listeners.start(self.server.app)

        if config.environment != DEVELOPMENT_ENVIRONMENT and not self._test_mode:
            self._drop(config.user)

        self.send(ReadyMessage())
        logger.info("started server", extra={"port": config.port})

        await self._loader.load(config.modules, self.app)
        await self.app.events.emit("start", self.server, self.app)

        self.app.mark_started()
        logger.info("all modules loaded")
        logger.info("startup time", extra={"ms": gwtime.since_ms(self._start_time)})
        scheme = "https" if config.tls is not None else "http"
        logger.info(
            "server url",
            extra={"url": f"{scheme}://{','.join(config.bind_addr)}:{config.port}"},
        )
        await self.app.events.emit(STARTED_EVENT, self.server, self.app)

    def _on_pipe_readable(self) -> None:
        assert self._conn is not None
        try:
            raw = self._conn.recv()
        except (EOFError, OSError):
            asyncio.get_running_loop().remove_reader(self._conn.fileno())
            logger.warning("master pipe closed")
            self.stop()
            return

        if isinstance(decode(raw), ExitMessage):
            logger.info("exit requested by master")
            self.stop()

    def _install_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._conn is not None:
            loop.add_reader(self._conn.fileno(), self._on_pipe_readable)
        if threading.current_thread() is threading.main_thread():
            loop.add_signal_handler(signal.SIGTERM, self.stop)

    def _remove_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._conn is not None and not self._conn.closed:
            loop.remove_reader(self._conn.fileno())
        if threading.current_thread() is threading.main_thread():
            loop.remove_signal_handler(signal.SIGTERM)

    async def serve(self) -> int:
        """
        Start, then serve until stopped.

        Returns:
            Exit status: 0 after a normal stop, 1 when startup failed and a
            completion callback received the error

        Raises:
            Exception: The startup error when no completion callback is set
        """
        loop = asyncio.get_running_loop()
        self._install_handlers(loop)
        try:
            starting = asyncio.ensure_future(self.start())
            stopping = asyncio.ensure_future(self._stopped.wait())
            await asyncio.wait({starting, stopping}, return_when=asyncio.FIRST_COMPLETED)

            if not starting.done():
                # Asked to exit while still starting
                starting.cancel()
                await asyncio.gather(starting, return_exceptions=True)
                return 0

            error = starting.exception()
            if error is not None:
                stopping.cancel()
                logger.critical("startup failed", extra={"exception": error})
                if self._done is None:
                    raise error
                self._done(error)
                return 1

            if self._done is not None:
                self._done(None)
            await stopping
            logger.info("stopping worker")
            return 0
        finally:
            self._remove_handlers(loop)
            await self.listeners.stop()


def run_worker(
    conn: Connection,
    config: Config,
    server_config: ServerConfig,
    sockets: BoundSockets,
    log_queue: Queue[logging.LogRecord | None] | None = None,
    events: ExtensionPoints | None = None,
    done: DoneCallback | None = None,
    test_mode: bool = False,
    start_time: float | None = None,
) -> None:
    """
    Worker process entry point, called by the supervisor after fork.

    Exits the process with the status returned by :meth:`WorkerRuntime.serve`.
    """
    from ... import log

    factory = log.get_factory()
    if factory is not None and log_queue is not None:
        factory.attach_queue(log_queue)

    lifecycle = ProcessLifecycle(ProcessRole.WORKER, server_config, test_mode=test_mode)
    lifecycle.configure()

    runtime = WorkerRuntime(
        config,
        server_config,
        sockets,
        conn=conn,
        events=events,
        done=done,
        test_mode=test_mode,
        start_time=start_time,
    )

    async def main() -> int:
        lifecycle.attach_loop(asyncio.get_running_loop())
        return await runtime.serve()

    status = asyncio.run(main())
    sys.exit(status)
