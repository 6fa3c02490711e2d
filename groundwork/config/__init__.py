"""
Configuration loading and validation.
"""

from .config import Config, deep_merge, load_yaml
from .defaults import DEFAULTS
from .schemas import (
    CorsPolicy,
    ServerConfig,
    SessionConfig,
    StaticRoute,
    TlsConfig,
    UserConfig,
    select_modules,
)

__all__ = [
    "Config",
    "CorsPolicy",
    "DEFAULTS",
    "ServerConfig",
    "SessionConfig",
    "StaticRoute",
    "TlsConfig",
    "UserConfig",
    "deep_merge",
    "load_yaml",
    "select_modules",
]
