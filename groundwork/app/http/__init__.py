"""
HTTP layer: middleware chain, server assembly and listeners.
"""

from .listeners import BoundSockets, Listeners, bind_sockets, create_redirect_app
from .server import MiddlewareDefinition, WebServer

__all__ = [
    "BoundSockets",
    "Listeners",
    "MiddlewareDefinition",
    "WebServer",
    "bind_sockets",
    "create_redirect_app",
]
