"""
groundwork - clustered HTTP(S) application bootstrap on FastAPI and uvicorn.

Example:
    import groundwork

    if __name__ == "__main__":
        groundwork.main()
"""

from importlib.metadata import PackageNotFoundError, version

# Logging first: installs the logger class used by every module logger
from . import log
from .app.builder.hook import ExtensionPoints, HookResult
from .app.core import AppContext, main, start
from .app.modules import Module
from .config import Config, ServerConfig
from .exceptions import (
    ConfigError,
    GroundworkError,
    IPCError,
    LifecycleError,
    ModuleError,
    ModuleNotRegisteredError,
    StartupError,
)

try:
    __version__ = version("groundwork")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "AppContext",
    "Config",
    "ConfigError",
    "ExtensionPoints",
    "GroundworkError",
    "HookResult",
    "IPCError",
    "LifecycleError",
    "Module",
    "ModuleError",
    "ModuleNotRegisteredError",
    "ServerConfig",
    "StartupError",
    "log",
    "main",
    "start",
]
