"""
Application entry point.

:func:`start` runs the master: it loads configuration, initializes logging,
configures the process, runs module master hooks, binds the listeners and
supervises the workers until one of them (or a signal) ends the master.
"""

from __future__ import annotations

import functools
import logging
import multiprocessing as mp
import sys
from collections.abc import Mapping, Sequence
from typing import Any

from ... import log
from ... import time as gwtime
from ...config import Config, ServerConfig
from ...config.defaults import DOWN_ENVIRONMENT
from ...exceptions import GroundworkError
from ...log import LogConfig, LogQueueListener
from ..builder.hook import ExtensionPoints
from ..cli.parser import apply_cli, parse_cli
from ..cluster.supervisor import Supervisor
from ..cluster.worker import DoneCallback, run_worker
from ..http.listeners import bind_sockets
from ..modules.loader import ModuleLoader
from .lifecycle import ProcessLifecycle, ProcessRole, is_test_mode

logger = logging.getLogger("groundwork.app")


def load_config(
    argv: Sequence[str] | None = None,
    parse_args: bool = True,
    overrides: Mapping[str, Any] | None = None,
) -> Config:
    """
    Build the layered configuration.

    Args:
        argv: Command-line arguments (``sys.argv[1:]`` when None)
        parse_args: Parse command-line options; disable in tests
        overrides: Dot-path overrides applied after environment variables
    """
    if not parse_args:
        return Config(overrides=overrides)
    args = parse_cli(argv)
    config = Config(paths=args.config, overrides=overrides)
    apply_cli(config, args)
    return config


def start(
    done: DoneCallback | None = None,
    *,
    argv: Sequence[str] | None = None,
    parse_args: bool = True,
    config: Config | None = None,
    overrides: Mapping[str, Any] | None = None,
    events: ExtensionPoints | None = None,
) -> int:
    """
    Start the master process and supervise workers.

    Args:
        done: Called in each worker once startup completed (with None) or
            failed (with the error)
        argv: Command-line arguments (``sys.argv[1:]`` when None)
        parse_args: Parse command-line options
        config: Use this configuration instead of loading one
        overrides: Dot-path configuration overrides
        events: Extension points whose listeners every worker inherits

    Returns:
        Exit status for the master process

    Raises:
        GroundworkError: If configuration, master init hooks or listener
            binding fail
    """
    start_time = gwtime.start()
    if config is None:
        config = load_config(argv, parse_args, overrides)

    log.init(LogConfig.from_config(config))
    logger.info("starting groundwork")

    server_config = ServerConfig.from_config(config)
    test_mode = is_test_mode()
    lifecycle = ProcessLifecycle(ProcessRole.MASTER, server_config, test_mode=test_mode)
    lifecycle.configure()

    if server_config.environment != DOWN_ENVIRONMENT:
        ModuleLoader().init_master(server_config.modules, config)

    sockets = bind_sockets(server_config)
    log_queue = mp.get_context("fork").Queue()
    listener = LogQueueListener(log_queue)
    listener.start()

    target = functools.partial(
        run_worker,
        config=config,
        server_config=server_config,
        sockets=sockets,
        log_queue=log_queue,
        events=events,
        done=done,
        test_mode=test_mode,
        start_time=start_time,
    )
    supervisor = Supervisor(server_config, target, test_mode=test_mode)
    try:
        status = supervisor.run()
        logger.info("master exiting", extra={"status": status})
        return status
    finally:
        listener.stop()
        sockets.close()


def main(argv: Sequence[str] | None = None) -> None:
    """Console entry point: run :func:`start` and exit with its status."""
    try:
        status = start(argv=argv)
    except GroundworkError as e:
        logger.critical("startup failed", extra={"exception": e})
        sys.exit(1)
    sys.exit(status)
