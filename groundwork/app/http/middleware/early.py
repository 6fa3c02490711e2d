"""
Early handler chain.

Modules register early handlers on the server after the middleware stack is
built; the chain reads the server's list on every request. A handler that
returns a response ends the chain; returning ``None`` continues to the next
handler and finally to the rest of the stack.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING

from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

if TYPE_CHECKING:
    from ..server import WebServer


class EarlyHandlerMiddleware:
    def __init__(self, app: ASGIApp, server: WebServer) -> None:
        self.app = app
        self.server = server

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            request = Request(scope, receive)
            for handler in list(self.server.early_handlers):
                response = handler(request)
                if inspect.isawaitable(response):
                    response = await response
                if response is not None:
                    await response(scope, receive, send)
                    return
        await self.app(scope, receive, send)
