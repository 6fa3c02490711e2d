"""
Readiness gate.

Rejects every HTTP request with ``503 Service Unavailable`` until the
application context is marked as started. The transition is one-way; after
it the gate is a pass-through.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Receive, Scope, Send

if TYPE_CHECKING:
    from ...core.context import AppContext


class ReadinessGate:
    """ASGI middleware answering 503 while the worker is still starting."""

    def __init__(self, app: ASGIApp, context: AppContext) -> None:
        self.app = app
        self.context = context

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and not self.context.started:
            response = PlainTextResponse("Service Unavailable", status_code=503)
            await response(scope, receive, send)
            return
        await self.app(scope, receive, send)
