"""
Built-in command-line options.

Options override the layered configuration after files and environment
variables have been applied.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from typing import Any

from ...dot_dict import DotDict
from ...log import apply_transport_spec


class DefaultsHelpFormatter(argparse.HelpFormatter):
    """Help formatter that appends non-empty default values to help text."""

    def _get_help_string(self, action: argparse.Action) -> str:
        help_text = action.help or ""
        if action.default not in (argparse.SUPPRESS, None, []) and action.default is not False:
            return help_text + f" (default: {action.default})"
        return help_text


def boolify(value: str) -> bool:
    """Parse a boolean option value."""
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean, got {value!r}")


def create_parser(prog: str | None = None) -> argparse.ArgumentParser:
    """Create the argument parser with the built-in options."""
    parser = argparse.ArgumentParser(prog=prog, formatter_class=DefaultsHelpFormatter)
    parser.add_argument(
        "--config",
        action="append",
        default=[],
        metavar="FILE",
        help="load a config file (repeatable)",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="console log level: trace, debug, info, notice, warning, error, critical, none",
    )
    parser.add_argument(
        "--log-timestamps",
        type=boolify,
        metavar="BOOL",
        help="override console log timestamps config",
    )
    parser.add_argument(
        "--log-colorize",
        type=boolify,
        metavar="BOOL",
        help="override console log colorization config",
    )
    parser.add_argument(
        "--log-transports",
        metavar="SPEC",
        help="transport spec: category=[-|+]transport[;...][,...], "
        "e.g. access=+console;-access,app=-console",
    )
    parser.add_argument("--silent", action="store_true", help="show no console output")
    parser.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="number of workers to use (0: number of cpus)",
    )
    return parser


def parse_cli(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse built-in options (``sys.argv[1:]`` when ``argv`` is None)."""
    return create_parser().parse_args(argv)


def apply_cli(config: DotDict, args: argparse.Namespace) -> DotDict:
    """
    Apply parsed options to a loaded configuration in place.

    Returns:
        The same configuration, for chaining
    """
    console: Any = config.get("loggers.console")
    if args.log_level is not None:
        console["level"] = args.log_level
    if args.log_colorize is not None:
        console["colorize"] = args.log_colorize
    if args.log_timestamps is not None:
        console["timestamp"] = args.log_timestamps
    if args.log_transports:
        categories = config.get("loggers.categories")
        current = categories.to_dict() if isinstance(categories, DotDict) else {}
        config.loggers["categories"] = apply_transport_spec(current, args.log_transports)
    if args.silent or (args.log_level or "").lower() == "none":
        console["silent"] = True
    if args.workers is not None:
        config.server["workers"] = args.workers
    return config
