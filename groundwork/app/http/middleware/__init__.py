"""
ASGI middleware installed by the server build pipeline.
"""

from .access import AccessLogMiddleware, client_address
from .body import BodyParserMiddleware, MethodOverrideMiddleware
from .cache import NO_CACHE_HEADERS, NoCacheMiddleware
from .cookies import CookieParserMiddleware, sign_cookie, unsign_cookie
from .early import EarlyHandlerMiddleware
from .errors import ErrorDispatchMiddleware, UnhandledErrorHandler, error_status
from .gate import ReadinessGate
from .static import StaticRouteMiddleware, route_matches

__all__ = [
    "AccessLogMiddleware",
    "BodyParserMiddleware",
    "CookieParserMiddleware",
    "EarlyHandlerMiddleware",
    "ErrorDispatchMiddleware",
    "MethodOverrideMiddleware",
    "NO_CACHE_HEADERS",
    "NoCacheMiddleware",
    "ReadinessGate",
    "StaticRouteMiddleware",
    "UnhandledErrorHandler",
    "client_address",
    "error_status",
    "route_matches",
    "sign_cookie",
    "unsign_cookie",
]
