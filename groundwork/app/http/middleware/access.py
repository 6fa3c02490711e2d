"""
Access log middleware.

Writes one line per request to the ``access`` logging category, in the
combined log format followed by the response time.
"""

from __future__ import annotations

import logging
import time

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ....log import LogConstants, get_logger


def client_address(scope: Scope, trust_proxy: bool) -> str:
    """
    Return the remote address of a request.

    With ``trust_proxy`` the first ``X-Forwarded-For`` entry wins.
    """
    if trust_proxy:
        forwarded = Headers(scope=scope).get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    client = scope.get("client")
    return client[0] if client else "-"


class AccessLogMiddleware:
    """
    Logs every HTTP request once the response has been sent.

    Args:
        app: Downstream ASGI app
        trust_proxy: Use ``X-Forwarded-For`` for the remote address
        prefix: Text prepended to each line, e.g. ``"(http) "``
        logger: Target logger (defaults to the ``access`` category)
    """

    def __init__(
        self,
        app: ASGIApp,
        trust_proxy: bool = False,
        prefix: str = "",
        logger: logging.Logger | None = None,
    ) -> None:
        self.app = app
        self.trust_proxy = trust_proxy
        self.prefix = prefix
        self.logger = logger

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.monotonic()
        status = 500
        length = 0

        async def send_wrapper(message: Message) -> None:
            nonlocal status, length
            if message["type"] == "http.response.start":
                status = message["status"]
            elif message["type"] == "http.response.body":
                length += len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            self._log(scope, status, length, time.monotonic() - started)

    def _log(self, scope: Scope, status: int, length: int, elapsed: float) -> None:
        headers = Headers(scope=scope)
        path = scope.get("path", "")
        if scope.get("query_string"):
            path += "?" + scope["query_string"].decode("latin-1")
        request_line = f"{scope.get('method', '-')} {path} HTTP/{scope.get('http_version', '1.1')}"
        line = (
            f"{self.prefix}{client_address(scope, self.trust_proxy)} - - "
            f"\"{request_line}\" {status} {length or '-'} "
            f"\"{headers.get('referer', '-')}\" \"{headers.get('user-agent', '-')}\" "
            f"{int(elapsed * 1000)}ms"
        )
        lg = self.logger or get_logger(LogConstants.ACCESS)
        lg.info(line)
