"""
The fixed server build sequence.

Each configurable concern is preceded by an extension point. Listeners of
the extension point may install their own middleware and return
``HookResult.SKIP`` to veto the default installation that follows::

    init
    configure-logger             -> access log
    configure-body-parser        -> method override, body parser
    configure-cookie-parser      -> cookie parser; readiness gate (always)
    configure-session            -> session; early handlers (always)
    configure-static             -> compression, static routes
    configure-cache              -> no-cache headers
    configure-router             -> router endpoint
    configure-routes
    configure-error-handlers
    configure-unhandled-error-handler -> fallback error handler
    ready                        -> application built
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from starlette.middleware.gzip import GZipMiddleware
from starlette.middleware.sessions import SessionMiddleware

from ...config.defaults import DOWN_ENVIRONMENT
from ..http.middleware import (
    AccessLogMiddleware,
    BodyParserMiddleware,
    CookieParserMiddleware,
    EarlyHandlerMiddleware,
    MethodOverrideMiddleware,
    NoCacheMiddleware,
    ReadinessGate,
    StaticRouteMiddleware,
)
from .hook import HookResult
from .pipeline import Pipeline, Stage

if TYPE_CHECKING:
    from ..core.context import AppContext
    from ..http.server import WebServer

logger = logging.getLogger("groundwork.stages")

EXTENSION_POINTS: tuple[str, ...] = (
    "init",
    "configure-logger",
    "configure-body-parser",
    "configure-cookie-parser",
    "configure-session",
    "configure-static",
    "configure-cache",
    "configure-router",
    "configure-routes",
    "configure-error-handlers",
    "configure-unhandled-error-handler",
    "start",
    "ready",
)

# Emitted once the readiness gate is open
STARTED_EVENT = "started"


def install_logger(server: WebServer, app: AppContext) -> None:
    server.use(AccessLogMiddleware, trust_proxy=server.config.trust_proxy)


def install_body_parser(server: WebServer, app: AppContext) -> None:
    server.use(MethodOverrideMiddleware)
    server.use(BodyParserMiddleware, limit=server.config.body_limit)


def install_cookie_parser(server: WebServer, app: AppContext) -> None:
    server.use(CookieParserMiddleware, secret=server.config.session.secret or None)


def install_readiness_gate(server: WebServer, app: AppContext) -> None:
    server.use(ReadinessGate, context=app)


def install_session(server: WebServer, app: AppContext) -> None:
    session = server.config.session
    if not session.enabled or server.config.environment == DOWN_ENVIRONMENT:
        return
    server.use(
        SessionMiddleware,
        secret_key=session.secret,
        session_cookie=session.cookie,
        max_age=session.max_age,
        https_only=session.https_only,
    )


def install_early_handlers(server: WebServer, app: AppContext) -> None:
    server.use(EarlyHandlerMiddleware, server=server)


def install_static(server: WebServer, app: AppContext) -> None:
    if server.config.compress:
        server.use(GZipMiddleware)
    # Later routes are attached first
    for route in reversed(server.config.static):
        server.use(StaticRouteMiddleware, route=route)


def install_cache(server: WebServer, app: AppContext) -> None:
    server.use(NoCacheMiddleware)


def install_router(server: WebServer, app: AppContext) -> None:
    server.attach_router()


def install_unhandled_error_handler(server: WebServer, app: AppContext) -> None:
    server.set_unhandled_error_handler(verbose=server.config.verbose_errors)


DefaultAction = Callable[["WebServer", "AppContext"], None]

# (extension point, default installers); defaults are skipped on veto
_CONFIGURABLE: tuple[tuple[str, tuple[DefaultAction, ...]], ...] = (
    ("configure-logger", (install_logger,)),
    ("configure-body-parser", (install_body_parser,)),
    ("configure-cookie-parser", (install_cookie_parser,)),
    ("configure-session", (install_session,)),
    ("configure-static", (install_static,)),
    ("configure-cache", (install_cache,)),
    ("configure-router", (install_router,)),
    ("configure-routes", ()),
    ("configure-error-handlers", ()),
    ("configure-unhandled-error-handler", (install_unhandled_error_handler,)),
)

# Installed right after the default of an extension point, never vetoable
_ALWAYS_AFTER: dict[str, DefaultAction] = {
    "configure-cookie-parser": install_readiness_gate,
    "configure-session": install_early_handlers,
}


def _stage_name(installer: DefaultAction) -> str:
    """install_body_parser -> body-parser"""
    return installer.__name__.removeprefix("install_").replace("_", "-")


def _emit(
    event: str, server: WebServer, app: AppContext
) -> Callable[[], Awaitable[HookResult]]:
    async def action() -> HookResult:
        return await app.events.emit(event, server, app)

    return action


def _install(
    installer: DefaultAction, server: WebServer, app: AppContext
) -> Callable[[], Awaitable[None]]:
    async def action() -> None:
        installer(server, app)

    return action


def build_stages(server: WebServer, app: AppContext) -> list[Stage]:
    """
    Create the fixed stage list for a server.

    Returns:
        Stages forming a single chain from ``init`` to ``ready``
    """
    stages = [Stage("init", _emit("init", server, app))]
    previous = "init"

    def add(
        name: str,
        action: Callable[[], Awaitable[HookResult | None]],
        skippable: bool = False,
    ) -> None:
        nonlocal previous
        stages.append(Stage(name, action, depends_on=(previous,), skippable=skippable))
        previous = name

    for event, installers in _CONFIGURABLE:
        add(event, _emit(event, server, app))
        for installer in installers:
            add(_stage_name(installer), _install(installer, server, app), skippable=True)
        after = _ALWAYS_AFTER.get(event)
        if after is not None:
            add(_stage_name(after), _install(after, server, app))

    async def ready() -> HookResult:
        server.build()
        return await app.events.emit("ready", server, app)

    add("ready", ready)
    return stages


async def build_server(server: WebServer, app: AppContext) -> dict[str, HookResult]:
    """
    Run the build sequence for a server.

    Raises:
        Exception: The first stage error, unchanged
    """
    if app.server is None:
        app.server = server
    results = await Pipeline(build_stages(server, app)).run()
    logger.debug("server built", extra={"middleware": server.middleware_names})
    return results
