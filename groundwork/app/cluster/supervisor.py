"""
Worker supervisor.

Runs in the master process: forks the workers, reacts to their messages,
drops privileges once the first worker is ready and replaces workers that
exit. Everything happens on a single loop waiting on the worker pipes and
process sentinels, so :class:`MasterState` needs no locking.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass
from multiprocessing.connection import Connection, wait
from typing import Any

from ...config.defaults import DEVELOPMENT_ENVIRONMENT
from ...config.schemas import ServerConfig, UserConfig
from .ipc import ExitMessage, Message, ReadyMessage, decode
from .privileges import drop_privileges

logger = logging.getLogger("groundwork.supervisor")

TEST_RUNNER_ENV = "GROUNDWORK_TEST_RUNNER"

WorkerTarget = Callable[[Connection], Any]


@dataclass
class MasterState:
    """State owned by the supervisor loop."""

    switched_user: bool = False


@dataclass(eq=False)
class WorkerHandle:
    """A forked worker and the master's end of its pipe."""

    process: Any  # multiprocessing process from the fork context
    conn: Connection
    awaiting_ready: bool
    conn_open: bool = True

    @property
    def pid(self) -> int | None:
        return self.process.pid


def _worker_main(target: WorkerTarget, conn: Connection, is_first: bool) -> None:
    if is_first:
        os.environ[TEST_RUNNER_ENV] = "1"
    target(conn)


def exit_status(exitcode: int | None) -> int:
    """Map a process exit code (negative for signals) to a shell status."""
    if exitcode is None:
        return 1
    if exitcode < 0:
        return 128 - exitcode
    return exitcode


class Supervisor:
    """
    Forks and supervises worker processes.

    Example:
        supervisor = Supervisor(server_config, target=run_worker)
        status = supervisor.run()  # blocks until the master must exit
        sys.exit(status)

    Args:
        config: Frozen server configuration
        target: Called in each forked worker with its end of the pipe
        test_mode: Master exits with a dead worker's code instead of
            restarting; privileges are never dropped
        drop: Privilege drop function (setgid then setuid)
        poll_interval: Seconds between checks of :meth:`stop`
    """

    def __init__(
        self,
        config: ServerConfig,
        target: WorkerTarget,
        test_mode: bool = False,
        drop: Callable[[UserConfig], Any] = drop_privileges,
        poll_interval: float = 0.5,
    ) -> None:
        self._config = config
        self._target = target
        self._test_mode = test_mode
        self._drop = drop
        self._poll_interval = poll_interval
        self._ctx = mp.get_context("fork")
        self._workers: list[WorkerHandle] = []
        self._stop_event = threading.Event()
        self.state = MasterState()
        self.fork_count = 0

    @property
    def workers(self) -> list[WorkerHandle]:
        """Current worker handles."""
        return list(self._workers)

    def live_workers(self) -> list[WorkerHandle]:
        return [h for h in self._workers if h.process.is_alive()]

    def start_worker(self, is_first: bool = False) -> WorkerHandle:
        """
        Fork a worker.

        Args:
            is_first: Tag the worker as the test runner

        Returns:
            Handle of the new worker
        """
        parent_conn, child_conn = self._ctx.Pipe(duplex=True)
        process = self._ctx.Process(
            target=_worker_main,
            args=(self._target, child_conn, is_first),
            name=f"worker-{self.fork_count}",
            daemon=True,
        )
        process.start()
        child_conn.close()

        handle = WorkerHandle(
            process=process,
            conn=parent_conn,
            awaiting_ready=not self.state.switched_user,
        )
        self._workers.append(handle)
        self.fork_count += 1
        logger.info("started worker", extra={"pid": process.pid, "first": is_first})
        return handle

    def handle_message(self, handle: WorkerHandle, message: Message | None) -> int | None:
        """
        React to a decoded worker message.

        Returns:
            Exit status when the master must exit, else None
        """
        if isinstance(message, ExitMessage):
            logger.info(
                "worker requested exit",
                extra={"pid": handle.pid, "status": message.status},
            )
            return message.status if message.status is not None else 0

        if isinstance(message, ReadyMessage) and handle.awaiting_ready:
            handle.awaiting_ready = False
            if not self.state.switched_user:
                self.state.switched_user = True
                self._switch_user()
        return None

    def _switch_user(self) -> None:
        if self._config.environment == DEVELOPMENT_ENVIRONMENT or self._test_mode:
            logger.debug("keeping master privileges")
            return
        self._drop(self._config.user)

    def handle_exit(self, handle: WorkerHandle) -> int | None:
        """
        React to a worker process exit.

        Returns:
            Exit status when the master must exit, else None
        """
        handle.process.join()
        code = handle.process.exitcode
        self._workers.remove(handle)
        handle.conn.close()
        logger.critical("worker exited", extra={"pid": handle.pid, "code": code})

        if self._test_mode:
            return exit_status(code)
        if self._config.restart_workers:
            self.start_worker()
            return None
        return 1

    def _receive(self, handle: WorkerHandle) -> int | None:
        try:
            raw = handle.conn.recv()
        except (EOFError, OSError):
            # Worker closed its end; its sentinel reports the exit
            handle.conn_open = False
            return None
        return self.handle_message(handle, decode(raw))

    def _drain(self, handle: WorkerHandle) -> int | None:
        # Messages sent right before the worker exited are still in the pipe
        while handle.conn_open and handle.conn.poll():
            status = self._receive(handle)
            if status is not None:
                return status
        return None

    def run(self) -> int:
        """
        Fork the configured number of workers and supervise them.

        Every remaining worker is sent an exit message when this returns or
        raises (including ``SystemExit`` from a SIGTERM handler).

        Returns:
            Exit status for the master
        """
        try:
            for i in range(self._config.workers):
                self.start_worker(is_first=(i == 0))

            while not self._stop_event.is_set():
                waitables: dict[Any, WorkerHandle] = {}
                for handle in self._workers:
                    waitables[handle.process.sentinel] = handle
                    if handle.conn_open:
                        waitables[handle.conn] = handle

                for ready in wait(list(waitables), timeout=self._poll_interval):
                    handle = waitables[ready]
                    if handle not in self._workers:
                        continue
                    if ready is handle.conn:
                        status = self._receive(handle)
                    else:
                        status = self._drain(handle)
                        if status is None:
                            status = self.handle_exit(handle)
                    if status is not None:
                        return status
            return 0
        finally:
            self.broadcast_exit()

    def broadcast_exit(self) -> None:
        """Ask every remaining worker to exit."""
        message = ExitMessage().encode()
        for handle in self._workers:
            if not handle.conn_open:
                continue
            try:
                handle.conn.send(message)
            except (BrokenPipeError, OSError):
                logger.debug("worker pipe closed", extra={"pid": handle.pid})

    def stop(self) -> None:
        """End :meth:`run` from another thread."""
        self._stop_event.set()
