"""
Built-in configuration defaults.

Every layer loaded by :class:`groundwork.config.Config` (YAML files,
environment overrides, command-line overrides) is deep-merged on top of
these values.
"""

from typing import Any

DEFAULTS: dict[str, Any] = {
    "environment": "development",
    "modules": [],
    "env_modules": {},
    "app": {
        "master_title": "groundwork-master",
        "worker_title": "groundwork-worker",
        "restart_workers": False,
        "user": {
            "user_id": None,
            "group_id": None,
        },
    },
    "server": {
        "host": "localhost:18443",
        "bind_addr": ["0.0.0.0"],
        "port": 18443,
        "http_port": 18080,
        "workers": 1,
        "key": None,
        "cert": None,
        "ca": [],
        "static": [],
        "compress": True,
        "trust_proxy": False,
        "body_limit": 1024 * 1024,
        "dump_exceptions": False,
        "session": {
            "enabled": False,
            "secret": "0123456789abcdef",
            "cookie": "session",
            "max_age": 14 * 24 * 60 * 60,
            "https_only": True,
        },
    },
    "loggers": {
        "console": {
            "level": "info",
            "colorize": True,
            "timestamp": True,
            "silent": False,
        },
        "app": {"filename": None},
        "access": {"filename": None},
        "error": {"filename": None},
        "categories": {
            "app": ["console", "app", "error"],
            "access": ["access"],
        },
    },
}

# Environment that disables sessions and master init hooks
DOWN_ENVIRONMENT = "down"

# Environments where errors are rendered verbosely and privileges are kept
DEVELOPMENT_ENVIRONMENT = "development"
