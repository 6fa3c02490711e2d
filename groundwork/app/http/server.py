"""
Web server assembly.

:class:`WebServer` collects middleware in the order the build pipeline
installs it, then constructs the FastAPI application. The first middleware
added is the outermost layer, so requests traverse layers in installation
order. Error dispatch always wraps the whole chain; HTTP errors raised by
routes (including the router's own 404 and 405) are passed to it instead of
FastAPI's JSON handler.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from fastapi import APIRouter, FastAPI
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import Response

from ...config.schemas import ServerConfig
from .middleware.errors import ErrorDispatchMiddleware, UnhandledErrorHandler

logger = logging.getLogger("groundwork.http.server")

ErrorHandler = Callable[
    [Exception, Request], "Awaitable[Response | None] | Response | None"
]
EarlyHandler = Callable[[Request], "Awaitable[Response | None] | Response | None"]


async def _reraise(request: Request, exc: Exception) -> Response:
    # HTTP errors go to ErrorDispatchMiddleware like any other error
    raise exc


@dataclass
class MiddlewareDefinition:
    """Definition for middleware to add."""

    middleware_class: type[Any]
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.middleware_class.__name__


class WebServer:
    """
    Collects the middleware chain, router and handlers of a worker.

    Modules reach it as ``app.server`` and typically add routes to
    :attr:`router`, handlers to :attr:`early_handlers` or
    :attr:`error_handlers`. Handler lists are read on every request, so
    handlers added after :meth:`build` take effect immediately.
    """

    def __init__(self, config: ServerConfig) -> None:
        self._config = config
        self._middleware: list[MiddlewareDefinition] = []
        self._app: FastAPI | None = None
        self.router = APIRouter()
        self.router_attached = False
        self.early_handlers: list[EarlyHandler] = []
        self.error_handlers: list[ErrorHandler] = []
        self.unhandled_error_handler: UnhandledErrorHandler | None = None

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def middleware(self) -> list[MiddlewareDefinition]:
        """Installed middleware, outermost first."""
        return list(self._middleware)

    @property
    def middleware_names(self) -> list[str]:
        return [definition.name for definition in self._middleware]

    @property
    def built(self) -> bool:
        return self._app is not None

    @property
    def app(self) -> FastAPI:
        """The built application; raises if :meth:`build` has not run."""
        if self._app is None:
            raise RuntimeError("server has not been built")
        return self._app

    def use(self, middleware_class: type[Any], **options: Any) -> None:
        """Append a middleware layer below the ones already installed."""
        if self._app is not None:
            raise RuntimeError("cannot add middleware after the server was built")
        self._middleware.append(MiddlewareDefinition(middleware_class, options))
        logger.debug("installed middleware", extra={"middleware": middleware_class.__name__})

    def add_early_handler(self, handler: EarlyHandler) -> None:
        self.early_handlers.append(handler)

    def add_error_handler(self, handler: ErrorHandler) -> None:
        self.error_handlers.append(handler)

    def attach_router(self) -> None:
        """Make :attr:`router` the endpoint of the middleware chain."""
        self.router_attached = True

    def set_unhandled_error_handler(self, verbose: bool) -> None:
        self.unhandled_error_handler = UnhandledErrorHandler(verbose=verbose)

    def build(self) -> FastAPI:
        """
        Build the FastAPI application.

        Returns:
            Configured FastAPI application
        """
        if self._app is not None:
            return self._app

        stack = [Middleware(ErrorDispatchMiddleware, server=self)]
        stack.extend(Middleware(d.middleware_class, **d.options) for d in self._middleware)

        app = FastAPI(
            middleware=stack,
            exception_handlers={HTTPException: _reraise},
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )
        if self.router_attached:
            # Mounted rather than included so routes added later are served
            app.mount("", self.router, name="routes")
        app.state.server = self
        self._app = app
        logger.debug("built server", extra={"middleware": self.middleware_names})
        return app
