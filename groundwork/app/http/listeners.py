"""
HTTP(S) listeners.

Sockets are bound by the master before workers are forked and inherited by
every worker, so privileged ports can be bound before privileges are
dropped. Each worker serves them with uvicorn:

- with TLS configured, the application is served over HTTPS on
  ``server.port`` and a redirect app answers plain HTTP on
  ``server.http_port`` with ``https://<server.host><path>``;
- without TLS, the application is served over plain HTTP on ``server.port``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import socket
import tempfile
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import RedirectResponse
from starlette.routing import Route

from ...config.schemas import ServerConfig, TlsConfig
from ...exceptions import StartupError
from .middleware.access import AccessLogMiddleware

logger = logging.getLogger("groundwork.listeners")


@dataclass
class BoundSockets:
    """Listening sockets created in the master."""

    main: list[socket.socket] = field(default_factory=list)
    redirect: list[socket.socket] = field(default_factory=list)

    def close(self) -> None:
        for sock in [*self.main, *self.redirect]:
            sock.close()


def _bind(host: str, port: int) -> socket.socket:
    # uvicorn's own binding: SO_REUSEADDR, inheritable, IPv6 aware
    config = uvicorn.Config(app=None, host=host, port=port, log_config=None)
    try:
        return config.bind_socket()
    except SystemExit as e:
        # uvicorn exits on bind errors
        raise StartupError("cannot bind listener", host=host, port=port) from e


def bind_sockets(config: ServerConfig) -> BoundSockets:
    """
    Bind every configured address.

    Raises:
        StartupError: If an address cannot be bound
    """
    sockets = BoundSockets()
    for addr in config.bind_addr:
        sockets.main.append(_bind(addr, config.port))
        if config.tls is not None:
            sockets.redirect.append(_bind(addr, config.http_port))
    logger.debug(
        "bound listeners",
        extra={
            "addrs": list(config.bind_addr),
            "port": config.port,
            "tls": config.tls is not None,
        },
    )
    return sockets


def redirect_url(host: str, request: Request) -> str:
    url = f"https://{host}{request.url.path}"
    if request.url.query:
        url += "?" + request.url.query
    return url


def create_redirect_app(config: ServerConfig) -> Starlette:
    """Plain-HTTP app redirecting every GET to the HTTPS server."""

    async def redirect(request: Request) -> RedirectResponse:
        return RedirectResponse(redirect_url(config.host, request), status_code=302)

    return Starlette(
        routes=[Route("/{path:path}", redirect, methods=["GET", "HEAD"])],
        middleware=[
            Middleware(AccessLogMiddleware, trust_proxy=True, prefix="(http) "),
        ],
    )


@contextlib.contextmanager
def ca_bundle(tls: TlsConfig) -> Iterator[str | None]:
    """
    Yield a single CA file for the TLS context.

    Multiple CA files are concatenated into a temporary bundle that is
    removed on exit.
    """
    if not tls.ca:
        yield None
        return
    if len(tls.ca) == 1:
        yield str(tls.ca[0])
        return

    fd, path = tempfile.mkstemp(prefix="groundwork-ca-", suffix=".pem")
    try:
        with os.fdopen(fd, "wb") as bundle:
            for ca in tls.ca:
                data = Path(ca).read_bytes()
                bundle.write(data if data.endswith(b"\n") else data + b"\n")
        yield path
    finally:
        os.unlink(path)


class _ListenerServer(uvicorn.Server):
    """uvicorn server leaving signal handling to the worker."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def install_signal_handlers(self) -> None:
        pass


class Listeners:
    """
    Serves an application on inherited sockets in a worker.

    Example:
        listeners = Listeners(server_config, sockets)
        await listeners.start(app)
        ...
        await listeners.stop()
    """

    def __init__(
        self,
        config: ServerConfig,
        sockets: BoundSockets,
        poll_interval: float = 0.05,
    ) -> None:
        self._config = config
        self._sockets = sockets
        self._poll_interval = poll_interval
        self._servers: list[uvicorn.Server] = []
        self._tasks: list[asyncio.Task[None]] = []
        self._exit_stack = contextlib.ExitStack()

    @property
    def servers(self) -> list[uvicorn.Server]:
        return list(self._servers)

    def _uvicorn_config(self, app: Any, **kwargs: Any) -> uvicorn.Config:
        return uvicorn.Config(
            app,
            log_config=None,
            access_log=False,
            server_header=False,
            proxy_headers=False,
            **kwargs,
        )

    def _serve(self, config: uvicorn.Config, sockets: list[socket.socket]) -> None:
        server = _ListenerServer(config)
        self._servers.append(server)
        self._tasks.append(asyncio.ensure_future(server.serve(sockets=sockets)))

    async def start(self, app: Any) -> None:
        """
        Start serving and wait until every listener accepts connections.

        Raises:
            StartupError: If a listener stops before it started
        """
        tls = self._config.tls
        if tls is None:
            self._serve(self._uvicorn_config(app), self._sockets.main)
        else:
            ca = self._exit_stack.enter_context(ca_bundle(tls))
            self._serve(
                self._uvicorn_config(
                    app,
                    ssl_keyfile=str(tls.key),
                    ssl_certfile=str(tls.cert),
                    ssl_ca_certs=ca,
                ),
                self._sockets.main,
            )
            self._serve(
                self._uvicorn_config(create_redirect_app(self._config)),
                self._sockets.redirect,
            )

        await self._wait_started()

    async def _wait_started(self) -> None:
        while not all(server.started for server in self._servers):
            for task in self._tasks:
                if task.done():
                    await self.stop()
                    cause = None if task.cancelled() else task.exception()
                    raise StartupError("listener stopped during startup") from cause
            await asyncio.sleep(self._poll_interval)

    async def stop(self) -> None:
        """Ask every listener to exit and wait for them."""
        for server in self._servers:
            server.should_exit = True
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._servers = []
        self._exit_stack.close()
