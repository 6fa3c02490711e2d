"""
Static route middleware.

One middleware is installed per configured static route. A directory route
serves files below its path with Starlette's ``StaticFiles`` and falls
through to the next layer when the file does not exist; a file route always
answers with the configured file.
"""

from __future__ import annotations

import logging
import os

from starlette.datastructures import MutableHeaders
from starlette.exceptions import HTTPException
from starlette.responses import FileResponse, Response
from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ....config.schemas import CorsPolicy, StaticRoute

logger = logging.getLogger("groundwork.http.static")


def route_matches(route: str, path: str) -> str | None:
    """
    Match a request path against a route prefix.

    Returns:
        The remainder of the path below the route, or None when it does not match
    """
    prefix = route.rstrip("/")
    if not prefix:
        return path
    if path == prefix:
        return "/"
    if path.startswith(prefix + "/"):
        return path[len(prefix) :]
    return None


def cors_headers(policy: CorsPolicy, preflight: bool = False) -> dict[str, str]:
    headers = {"access-control-allow-origin": policy.allow_origin}
    if preflight:
        headers["access-control-allow-methods"] = ", ".join(policy.allow_methods)
        if policy.allow_headers:
            headers["access-control-allow-headers"] = ", ".join(policy.allow_headers)
        if policy.max_age is not None:
            headers["access-control-max-age"] = str(policy.max_age)
    return headers


class StaticRouteMiddleware:
    """Serves one static route, passing unmatched requests through."""

    def __init__(self, app: ASGIApp, route: StaticRoute) -> None:
        self.app = app
        self.route = route
        self._files: StaticFiles | None = None
        if not route.file:
            self._files = StaticFiles(directory=route.path, html=True, check_dir=False)
        logger.debug(
            "serving static route",
            extra={"route": route.route, "path": str(route.path), "file": route.file},
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        remainder = route_matches(self.route.route, scope["path"])
        if remainder is None:
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        cors = self.route.cors
        if method == "OPTIONS" and cors is not None:
            response: Response = Response(status_code=204, headers=cors_headers(cors, True))
            await response(scope, receive, send)
            return

        if method not in ("GET", "HEAD"):
            await self.app(scope, receive, send)
            return

        found = await self._lookup(remainder, scope)
        if found is None:
            await self.app(scope, receive, send)
            return

        if cors is not None:
            send = self._with_cors(send, cors)
        await found(scope, receive, send)

    async def _lookup(self, remainder: str, scope: Scope) -> Response | None:
        if self._files is None:
            return FileResponse(self.route.path)

        relpath = os.path.normpath(os.path.join(*remainder.split("/")))
        try:
            return await self._files.get_response(relpath, scope)
        except HTTPException as e:
            if e.status_code == 404:
                return None
            raise

    @staticmethod
    def _with_cors(send: Send, policy: CorsPolicy) -> Send:
        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in cors_headers(policy).items():
                    headers[name] = value
            await send(message)

        return send_wrapper
