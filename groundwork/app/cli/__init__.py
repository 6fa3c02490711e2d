"""
Command-line interface for groundwork processes.
"""

from .parser import DefaultsHelpFormatter, apply_cli, boolify, create_parser, parse_cli

__all__ = ["DefaultsHelpFormatter", "apply_cli", "boolify", "create_parser", "parse_cli"]
