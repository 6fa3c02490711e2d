"""
Process-level building blocks: context, lifecycle, shutdown and entry point.
"""

from .app import load_config, main, start
from .context import AppContext
from .lifecycle import FaultHandler, ProcessLifecycle, ProcessRole, is_test_mode
from .shutdown import ShutdownManager

__all__ = [
    "AppContext",
    "FaultHandler",
    "ProcessLifecycle",
    "ProcessRole",
    "ShutdownManager",
    "is_test_mode",
    "load_config",
    "main",
    "start",
]
