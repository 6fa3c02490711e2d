"""
Request body middleware: HTTP method override and body parsing.
"""

from __future__ import annotations

import json
from urllib.parse import parse_qsl

from starlette.datastructures import Headers
from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

METHOD_OVERRIDE_HEADER = "x-http-method-override"


class MethodOverrideMiddleware:
    """Rewrites POST requests carrying ``X-HTTP-Method-Override``."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope.get("method") == "POST":
            override = Headers(scope=scope).get(METHOD_OVERRIDE_HEADER)
            if override:
                scope = dict(scope, method=override.strip().upper())
        await self.app(scope, receive, send)


class BodyParserMiddleware:
    """
    Parses JSON and urlencoded request bodies into ``request.state.body``.

    The raw body is replayed to downstream handlers so ``await request.body()``
    keeps working. Other content types are passed through untouched.

    Raises:
        HTTPException: 400 for malformed JSON, 413 when the body exceeds ``limit``
    """

    def __init__(self, app: ASGIApp, limit: int = 1024 * 1024) -> None:
        self.app = app
        self.limit = limit

    @staticmethod
    def _kind(headers: Headers) -> str | None:
        content_type = headers.get("content-type", "").split(";")[0].strip().lower()
        if content_type == "application/json" or content_type.endswith("+json"):
            return "json"
        if content_type == "application/x-www-form-urlencoded":
            return "form"
        return None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        kind = self._kind(headers)
        if kind is None:
            await self.app(scope, receive, send)
            return

        declared = headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.limit:
            raise HTTPException(status_code=413)

        body = await self._read(receive)
        state = scope.setdefault("state", {})
        state["body"] = self._parse(kind, body)

        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)

    async def _read(self, receive: Receive) -> bytes:
        chunks: list[bytes] = []
        size = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.limit:
                raise HTTPException(status_code=413)
            chunks.append(chunk)
            if not message.get("more_body", False):
                break
        return b"".join(chunks)

    @staticmethod
    def _parse(kind: str, body: bytes) -> object:
        if not body:
            return {}
        if kind == "json":
            try:
                return json.loads(body)
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                raise HTTPException(status_code=400, detail="invalid json") from e
        return dict(parse_qsl(body.decode("latin-1"), keep_blank_values=True))
