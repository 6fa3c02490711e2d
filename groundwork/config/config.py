"""
Layered YAML configuration.

The effective configuration is built from, in order of increasing priority:

1. Built-in defaults (:data:`groundwork.config.defaults.DEFAULTS`)
2. Each YAML file passed with ``--config`` (applied in order)
3. Environment variables prefixed with ``GROUNDWORK_``
4. Explicit overrides (usually from the command line)
"""

from __future__ import annotations

import copy
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml

from ..dot_dict import DotDict
from ..exceptions import ConfigError
from .constants import ENV_PREFIX, MAX_CONFIG_SIZE_BYTES, RESERVED_ENV_VARS
from .defaults import DEFAULTS


def deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """
    Recursively merge ``override`` into a copy of ``base``.

    Nested mappings are merged key by key; any other value (lists included)
    replaces the base value.
    """
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def load_yaml(path: str | Path) -> dict[str, Any]:
    """
    Load a YAML configuration file.

    Raises:
        ConfigError: If the file is missing, too large, malformed or not a mapping.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError("config file not found", path=str(path))

    size = path.stat().st_size
    if size > MAX_CONFIG_SIZE_BYTES:
        raise ConfigError(
            "config file too large", path=str(path), size=size, limit=MAX_CONFIG_SIZE_BYTES
        )

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}", path=str(path)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("config file must contain a mapping", path=str(path))
    return data


class Config(DotDict):
    """
    Application configuration with attribute access.

    Example:
        config = Config(["etc/app.yaml"], overrides={"server.workers": 4})
        config.server.port
        config.get("server.session.secret")
    """

    def __init__(
        self,
        paths: Iterable[str | Path] = (),
        overrides: Mapping[str, Any] | None = None,
        env_prefix: str = ENV_PREFIX,
        enable_env_overrides: bool = True,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """
        Build the layered configuration.

        Args:
            paths: YAML files merged over the defaults, in order
            overrides: Dot-path to value mapping applied last
            env_prefix: Prefix for environment variable overrides
            enable_env_overrides: Whether to apply environment variables at all
            environ: Environment to read instead of ``os.environ``
        """
        data = copy.deepcopy(DEFAULTS)
        for path in paths:
            data = deep_merge(data, load_yaml(path))

        if enable_env_overrides:
            env = os.environ if environ is None else environ
            for env_key, env_value in collect_env_vars(env, env_prefix).items():
                config_path = env_key_to_path(data, env_key[len(env_prefix) :])
                set_nested_value(data, config_path, convert_env_value(env_value))

        for dotted, value in (overrides or {}).items():
            set_nested_value(data, dotted.split("."), value)

        super().__init__(**data)


def collect_env_vars(environ: Mapping[str, str], prefix: str) -> dict[str, str]:
    """Collect environment variables carrying the override prefix."""
    return {
        key: value
        for key, value in environ.items()
        if key.startswith(prefix) and key not in RESERVED_ENV_VARS
    }


def env_key_to_path(data: Mapping[str, Any], key: str) -> list[str]:
    """
    Convert an environment variable suffix to a configuration path.

    Parts are split on ``_`` and greedily re-joined when the joined name is an
    existing key, so ``SERVER_BODY_LIMIT`` maps to ``["server", "body_limit"]``.
    """
    parts = key.lower().split("_")
    path: list[str] = []
    current: Any = data
    i = 0
    while i < len(parts):
        match = None
        if isinstance(current, Mapping):
            for j in range(len(parts), i, -1):
                candidate = "_".join(parts[i:j])
                if candidate in current:
                    match = (candidate, j)
                    break
        if match is None:
            match = (parts[i], i + 1)
        name, i = match
        path.append(name)
        current = current.get(name) if isinstance(current, Mapping) else None
    return path


def set_nested_value(data: dict[str, Any], path: list[str], value: Any) -> None:
    """Set a nested value, creating intermediate mappings as needed."""
    current = data
    for part in path[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[path[-1]] = value


def convert_env_value(value: str) -> Any:
    """
    Convert an environment variable string using YAML scalar rules.

    ``"8080"`` becomes ``8080``, ``"true"`` becomes ``True`` and ``"[a, b]"``
    becomes a list. Unparseable values are kept as strings.
    """
    if value == "":
        return None
    try:
        return yaml.safe_load(value)
    except yaml.YAMLError:
        return value
