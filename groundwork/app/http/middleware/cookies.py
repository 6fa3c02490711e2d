"""
Cookie parser middleware.

All request cookies are exposed as ``request.state.cookies``. Cookies whose
value starts with ``s:`` are signed: they are verified with the session
secret and moved to ``request.state.signed_cookies``. Cookies that fail
verification are dropped.
"""

from __future__ import annotations

from itsdangerous import BadSignature, Signer
from starlette.datastructures import Headers
from starlette.requests import cookie_parser
from starlette.types import ASGIApp, Receive, Scope, Send

SIGNED_PREFIX = "s:"


def sign_cookie(value: str, secret: str) -> str:
    """Sign a cookie value so :class:`CookieParserMiddleware` accepts it."""
    return SIGNED_PREFIX + Signer(secret).sign(value).decode("utf-8")


def unsign_cookie(value: str, secret: str) -> str | None:
    """Verify a signed cookie value, returning None when the signature is bad."""
    if not value.startswith(SIGNED_PREFIX):
        return None
    try:
        return Signer(secret).unsign(value[len(SIGNED_PREFIX) :]).decode("utf-8")
    except BadSignature:
        return None


class CookieParserMiddleware:
    """Parses the ``Cookie`` header into request state."""

    def __init__(self, app: ASGIApp, secret: str | None = None) -> None:
        self.app = app
        self.secret = secret

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] in ("http", "websocket"):
            cookies = cookie_parser(Headers(scope=scope).get("cookie", ""))
            signed: dict[str, str] = {}
            if self.secret:
                for name, value in list(cookies.items()):
                    if not value.startswith(SIGNED_PREFIX):
                        continue
                    del cookies[name]
                    verified = unsign_cookie(value, self.secret)
                    if verified is not None:
                        signed[name] = verified

            state = scope.setdefault("state", {})
            state["cookies"] = cookies
            state["signed_cookies"] = signed
        await self.app(scope, receive, send)
