"""
Error dispatch for the middleware chain.

Errors raised anywhere below this middleware are offered to the server's
custom error handlers in registration order; the first handler returning a
response wins. Otherwise the unhandled-error handler renders a plain-text
response. When the response has already started no second response is
written and the error is re-raised so the server aborts the connection.
"""

from __future__ import annotations

import inspect
import logging
import traceback
from http import HTTPStatus
from typing import TYPE_CHECKING

from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

if TYPE_CHECKING:
    from ..server import WebServer

logger = logging.getLogger("groundwork.http.errors")


def error_status(exc: BaseException) -> int:
    """Status code carried by an error (``status_code`` or ``status``), else 500."""
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool) and 400 <= value < 600:
            return value
    return 500


class UnhandledErrorHandler:
    """
    Last-resort error renderer.

    Args:
        verbose: Render the traceback instead of the status phrase
    """

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose

    def __call__(self, exc: BaseException, request: Request) -> Response:
        status = error_status(exc)
        if status >= 500:
            logger.error(
                "unhandled error",
                extra={"path": request.url.path, "status": status, "exception": exc},
            )

        if self.verbose:
            body = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        else:
            try:
                body = HTTPStatus(status).phrase
            except ValueError:
                body = str(status)
        headers = getattr(exc, "headers", None)
        return PlainTextResponse(body, status_code=status, headers=headers or None)


class ErrorDispatchMiddleware:
    """Routes errors through custom handlers, then the unhandled handler."""

    def __init__(self, app: ASGIApp, server: WebServer) -> None:
        self.app = app
        self.server = server

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                logger.error(
                    "error after response started",
                    extra={"path": scope.get("path"), "exception": exc},
                )
                raise

            response = await self._handle(exc, Request(scope, receive))
            if response is None:
                raise
            await response(scope, receive, send)

    async def _handle(self, exc: Exception, request: Request) -> Response | None:
        for handler in list(self.server.error_handlers):
            response = handler(exc, request)
            if inspect.isawaitable(response):
                response = await response
            if response is not None:
                return response

        unhandled = self.server.unhandled_error_handler
        if unhandled is None:
            return None
        return unhandled(exc, request)
