"""
Color management for the logging system.
"""

import logging

from .constants import LogConstants


class ColorManager:
    """Centralized ANSI color code management."""

    RED = "\x1b[31"
    GREEN = "\x1b[32"
    YELLOW = "\x1b[33"
    MAGENTA = "\x1b[35"
    CYAN = "\x1b[36"
    DEFAULT = "\x1b[38"

    RESET = LogConstants.RESET

    COLORS: dict[int, str] = {
        logging.DEBUG: "\x1b[38;5;32",
        logging.INFO: CYAN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: MAGENTA,
    }

    @staticmethod
    def get_color_for_level(level: int) -> str:
        """Get the color escape prefix for a log level, falling back to default."""
        return ColorManager.COLORS.get(level, ColorManager.DEFAULT)

    @staticmethod
    def create_gray_level(level: int) -> str:
        """Create a gray color (0-23) used for metadata and trace output."""
        level = max(0, min(level, 23))
        return f"\x1b[38;5;{LogConstants.GRAY_BASE + level}"
