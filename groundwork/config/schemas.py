"""
Frozen configuration snapshots.

:meth:`ServerConfig.from_config` validates the layered configuration once
and exposes it as immutable dataclasses, so runtime code never has to
re-check types or defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..dot_dict import DotDict
from ..exceptions import ConfigError


def _as_dict(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, DotDict):
        return value.to_dict()
    if isinstance(value, dict):
        return value
    raise ConfigError("expected a mapping", value=value)


def _as_int(value: Any, key: str, minimum: int | None = None) -> int:
    if isinstance(value, bool):
        raise ConfigError("expected an integer", key=key, value=value)
    try:
        result = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError("expected an integer", key=key, value=value) from e
    if minimum is not None and result < minimum:
        raise ConfigError(f"must be >= {minimum}", key=key, value=value)
    return result


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


@dataclass(frozen=True)
class CorsPolicy:
    """CORS headers added to responses of a single static route."""

    allow_origin: str = "*"
    allow_methods: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")
    allow_headers: tuple[str, ...] = ()
    max_age: int | None = None

    @classmethod
    def from_value(cls, value: Any) -> CorsPolicy | None:
        """Build a policy from ``True``, a mapping or a falsy value."""
        if not value:
            return None
        if value is True:
            return cls()
        data = _as_dict(value)
        return cls(
            allow_origin=str(data.get("allow_origin", "*")),
            allow_methods=tuple(
                m.upper() for m in _as_list(data.get("allow_methods"))
            )
            or cls.allow_methods,
            allow_headers=tuple(_as_list(data.get("allow_headers"))),
            max_age=(
                _as_int(data["max_age"], "cors.max_age", minimum=0)
                if data.get("max_age") is not None
                else None
            ),
        )


@dataclass(frozen=True)
class StaticRoute:
    """
    A static route serving a directory or a single file.

    A plain string entry is shorthand for ``{"route": "/", "path": <string>}``.
    """

    route: str
    path: Path
    file: bool = False
    cors: CorsPolicy | None = None

    @classmethod
    def from_value(cls, value: Any) -> StaticRoute:
        if isinstance(value, (str, os.PathLike)):
            return cls(route="/", path=Path(value).resolve())

        data = _as_dict(value)
        if not data.get("path"):
            raise ConfigError("static route requires a path", route=data)

        route = str(data.get("route", "/"))
        if not route.startswith("/"):
            route = "/" + route
        return cls(
            route=route,
            path=Path(data["path"]).resolve(),
            file=bool(data.get("file", False)),
            cors=CorsPolicy.from_value(data.get("cors")),
        )


@dataclass(frozen=True)
class SessionConfig:
    """Signed cookie session settings."""

    enabled: bool = False
    secret: str = ""
    cookie: str = "session"
    max_age: int | None = None
    https_only: bool = True


@dataclass(frozen=True)
class TlsConfig:
    """Certificate material for the HTTPS listener."""

    key: Path
    cert: Path
    ca: tuple[Path, ...] = ()


@dataclass(frozen=True)
class UserConfig:
    """Identity the master switches to after the first worker is ready."""

    user_id: str | int | None = None
    group_id: str | int | None = None

    @property
    def configured(self) -> bool:
        return self.user_id is not None or self.group_id is not None


@dataclass(frozen=True)
class ServerConfig:
    """Validated, immutable view of the server-related configuration."""

    environment: str
    modules: tuple[Any, ...]
    master_title: str
    worker_title: str
    restart_workers: bool
    user: UserConfig
    host: str
    bind_addr: tuple[str, ...]
    port: int
    http_port: int
    workers: int
    tls: TlsConfig | None
    static: tuple[StaticRoute, ...] = ()
    compress: bool = True
    trust_proxy: bool = False
    body_limit: int = 1024 * 1024
    dump_exceptions: bool = False
    session: SessionConfig = field(default_factory=SessionConfig)

    @property
    def verbose_errors(self) -> bool:
        """Whether unhandled errors render their traceback."""
        return self.environment == "development" or self.dump_exceptions

    @classmethod
    def from_config(cls, config: DotDict) -> ServerConfig:
        """
        Validate and freeze the layered configuration.

        Args:
            config: Loaded configuration (see :class:`groundwork.config.Config`)

        Returns:
            Frozen server configuration

        Raises:
            ConfigError: If a value has the wrong type or is out of range
        """
        environment = str(config.get("environment", "development"))
        app = _as_dict(config.get("app"))
        server = _as_dict(config.get("server"))
        session = _as_dict(server.get("session"))
        user = _as_dict(app.get("user"))

        workers = _as_int(server.get("workers", 1), "server.workers")
        if workers <= 0:
            workers = os.cpu_count() or 1

        return cls(
            environment=environment,
            modules=tuple(select_modules(config)),
            master_title=str(app.get("master_title", "groundwork-master")),
            worker_title=str(app.get("worker_title", "groundwork-worker")),
            restart_workers=bool(app.get("restart_workers", False)),
            user=UserConfig(
                user_id=user.get("user_id"), group_id=user.get("group_id")
            ),
            host=str(server.get("host", "localhost")),
            bind_addr=tuple(str(a) for a in _as_list(server.get("bind_addr")))
            or ("0.0.0.0",),
            port=_as_int(server.get("port", 0), "server.port", minimum=0),
            http_port=_as_int(server.get("http_port", 0), "server.http_port", minimum=0),
            workers=workers,
            tls=_tls_from(server),
            static=tuple(StaticRoute.from_value(v) for v in _as_list(server.get("static"))),
            compress=bool(server.get("compress", True)),
            trust_proxy=bool(server.get("trust_proxy", False)),
            body_limit=_as_int(
                server.get("body_limit", 1024 * 1024), "server.body_limit", minimum=0
            ),
            dump_exceptions=bool(server.get("dump_exceptions", False)),
            session=SessionConfig(
                enabled=bool(session.get("enabled", False)),
                secret=str(session.get("secret") or ""),
                cookie=str(session.get("cookie", "session")),
                max_age=(
                    _as_int(session["max_age"], "server.session.max_age", minimum=0)
                    if session.get("max_age") is not None
                    else None
                ),
                https_only=bool(session.get("https_only", True)),
            ),
        )


def _tls_from(server: dict[str, Any]) -> TlsConfig | None:
    key, cert = server.get("key"), server.get("cert")
    if not key and not cert:
        return None
    if not key or not cert:
        raise ConfigError("server.key and server.cert must be set together")
    return TlsConfig(
        key=Path(key),
        cert=Path(cert),
        ca=tuple(Path(p) for p in _as_list(server.get("ca"))),
    )


def select_modules(config: DotDict) -> list[Any]:
    """
    Return the module list for the configured environment.

    ``env_modules[environment]`` wins when present, otherwise ``modules``.
    """
    environment = config.get("environment")
    env_modules = config.get("env_modules")
    if isinstance(env_modules, (DotDict, dict)) and environment in env_modules:
        return _as_list(env_modules[environment])
    return _as_list(config.get("modules"))
