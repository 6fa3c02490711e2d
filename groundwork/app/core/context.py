"""
Application context shared by the pipeline, the readiness gate and modules.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ...exceptions import LifecycleError, ModuleNotRegisteredError
from ..builder.hook import ExtensionPoints

if TYPE_CHECKING:
    from ...config import Config, ServerConfig
    from ..http.server import WebServer
    from ..modules.base import Module

logger = logging.getLogger("groundwork.context")


class AppContext:
    """
    Per-worker application state.

    Holds the one-way ``started`` flag read by the readiness gate and the
    registry of loaded modules. Modules receive it as ``app`` in their
    ``init`` hook.

    Example:
        def init(self, app):
            app.server.router.add_api_route("/hello", hello)
            app.events.register("started", lambda server, app: lg.info("ready"))
    """

    def __init__(
        self,
        config: Config,
        server_config: ServerConfig,
        events: ExtensionPoints | None = None,
        server: WebServer | None = None,
        exit_handler: Callable[[int | None], None] | None = None,
    ) -> None:
        self.config = config
        self.server_config = server_config
        self.events = events or ExtensionPoints()
        self.server = server
        self._exit_handler = exit_handler
        self._started = False
        self._modules: dict[str, Module] = {}

    @property
    def started(self) -> bool:
        return self._started

    def mark_started(self) -> bool:
        """
        Open the readiness gate.

        Returns:
            True on the transition, False when already started
        """
        if self._started:
            return False
        self._started = True
        logger.debug("marked started")
        return True

    def request_exit(self, status: int | None = None) -> None:
        """
        Ask the master process to exit with ``status``.

        Raises:
            LifecycleError: If the process is not supervised by a master
        """
        if self._exit_handler is None:
            raise LifecycleError("no master to request exit from")
        self._exit_handler(status)

    @property
    def modules(self) -> dict[str, Module]:
        """Loaded modules by name, in registration order."""
        return dict(self._modules)

    def register_module(self, module: Module) -> None:
        """Register a module under its name, replacing any previous one."""
        if module.name in self._modules:
            logger.debug("replacing module", extra={"module": module.name})
        self._modules[module.name] = module

    def module(self, name: str) -> Module:
        """
        Look up a loaded module.

        Raises:
            ModuleNotRegisteredError: If no module registered under ``name``
        """
        try:
            return self._modules[name]
        except KeyError:
            raise ModuleNotRegisteredError(name) from None

    def __getitem__(self, name: str) -> Any:
        return self.module(name)
