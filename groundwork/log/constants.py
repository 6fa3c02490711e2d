"""
Constants and configuration values for the logging system.

This module contains the constant values used throughout the logging system,
including format strings, category names and custom log level definitions.
"""

import logging


class LogConstants:
    """Constants for the logging system."""

    # Rule width the message column is padded to before extra fields
    DEFAULT_RULE_WIDTH: int = 70

    # Custom log levels
    CUSTOM_LEVELS: dict[str, int] = {"TRACE": 5}

    # Log level names for resolution (custom levels are added on import)
    LEVEL_NAMES: dict[str, int | bool] = {
        "critical": logging.CRITICAL,
        "error": logging.ERROR,
        "warning": logging.WARNING,
        "notice": logging.INFO,
        "info": logging.INFO,
        "debug": logging.DEBUG,
        "none": False,  # Special value to silence the console
        "false": False,
    }

    # Logging categories
    APP: str = "app"
    ACCESS: str = "access"

    # Transport names
    CONSOLE: str = "console"
    ERROR: str = "error"

    # ANSI escape sequences
    RESET: str = "\x1b[0m"
    GRAY_BASE: int = 232
