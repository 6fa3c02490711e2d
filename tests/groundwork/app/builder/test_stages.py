"""Tests for the fixed server build sequence."""

import pytest

from groundwork.app.builder.hook import ExtensionPoints, HookResult
from groundwork.app.builder.stages import (
    EXTENSION_POINTS,
    build_server,
    build_stages,
)
from groundwork.app.builder.pipeline import Pipeline
from groundwork.app.core.context import AppContext
from groundwork.app.http.middleware import ReadinessGate, StaticRouteMiddleware
from groundwork.app.http.server import WebServer
from groundwork.config import Config

DEFAULT_CHAIN = [
    "AccessLogMiddleware",
    "MethodOverrideMiddleware",
    "BodyParserMiddleware",
    "CookieParserMiddleware",
    "ReadinessGate",
    "EarlyHandlerMiddleware",
    "GZipMiddleware",
    "NoCacheMiddleware",
]


def _setup(server_config, events=None):
    server = WebServer(server_config)
    app = AppContext(Config(enable_env_overrides=False), server_config, events=events, server=server)
    return server, app


class _Marker:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        await self.app(scope, receive, send)


@pytest.mark.unit
class TestBuildStages:
    def test_single_chain_in_fixed_order(self, server_config):
        server, app = _setup(server_config)
        stages = build_stages(server, app)
        names = [stage.name for stage in stages]

        assert names == [
            "init",
            "configure-logger",
            "logger",
            "configure-body-parser",
            "body-parser",
            "configure-cookie-parser",
            "cookie-parser",
            "readiness-gate",
            "configure-session",
            "session",
            "early-handlers",
            "configure-static",
            "static",
            "configure-cache",
            "cache",
            "configure-router",
            "router",
            "configure-routes",
            "configure-error-handlers",
            "configure-unhandled-error-handler",
            "unhandled-error-handler",
            "ready",
        ]
        assert Pipeline(stages).order() == names

    def test_only_defaults_are_skippable(self, server_config):
        server, app = _setup(server_config)
        skippable = {s.name for s in build_stages(server, app) if s.skippable}
        assert skippable == {
            "logger",
            "body-parser",
            "cookie-parser",
            "session",
            "static",
            "cache",
            "router",
            "unhandled-error-handler",
        }

    def test_every_emitted_point_is_declared(self, server_config):
        server, app = _setup(server_config)
        emitted = {s.name for s in build_stages(server, app) if s.name.startswith("configure-")}
        assert emitted <= set(EXTENSION_POINTS)


@pytest.mark.unit
class TestBuildServer:
    @pytest.mark.asyncio
    async def test_default_chain(self, server_config):
        server, app = _setup(server_config)
        await build_server(server, app)

        assert server.middleware_names == DEFAULT_CHAIN
        assert server.router_attached
        assert server.unhandled_error_handler is not None
        assert server.unhandled_error_handler.verbose is True
        assert server.built

    @pytest.mark.asyncio
    async def test_readiness_gate_uses_context(self, server_config):
        server, app = _setup(server_config)
        await build_server(server, app)
        gate = next(d for d in server.middleware if d.middleware_class is ReadinessGate)
        assert gate.options["context"] is app

    @pytest.mark.asyncio
    async def test_emits_every_point_in_order(self, server_config):
        events = ExtensionPoints()
        seen = []
        for point in EXTENSION_POINTS:
            if point != "start":
                events.register(point, lambda s, a, p=point: seen.append(p))
        server, app = _setup(server_config, events)

        await build_server(server, app)

        assert seen == [p for p in EXTENSION_POINTS if p != "start"]

    @pytest.mark.asyncio
    async def test_veto_replaces_default(self, server_config):
        events = ExtensionPoints()

        def custom_static(server, app):
            server.use(_Marker)
            return HookResult.SKIP

        events.register("configure-static", custom_static)
        server, app = _setup(server_config, events)
        await build_server(server, app)

        assert "GZipMiddleware" not in server.middleware_names
        assert "_Marker" in server.middleware_names
        assert server.middleware_names.index("_Marker") < server.middleware_names.index(
            "NoCacheMiddleware"
        )

    @pytest.mark.asyncio
    async def test_readiness_gate_cannot_be_vetoed(self, server_config):
        events = ExtensionPoints()
        events.register("configure-cookie-parser", lambda s, a: HookResult.SKIP)
        events.register("configure-session", lambda s, a: HookResult.SKIP)
        server, app = _setup(server_config, events)
        await build_server(server, app)

        assert "CookieParserMiddleware" not in server.middleware_names
        assert "ReadinessGate" in server.middleware_names
        assert "EarlyHandlerMiddleware" in server.middleware_names

    @pytest.mark.asyncio
    async def test_router_veto(self, server_config):
        events = ExtensionPoints()
        events.register("configure-router", lambda s, a: HookResult.SKIP)
        server, app = _setup(server_config, events)
        await build_server(server, app)
        assert not server.router_attached

    @pytest.mark.asyncio
    async def test_session_installed_when_enabled(self, make_server_config):
        config = make_server_config(**{"server.session.enabled": True})
        server, app = _setup(config)
        await build_server(server, app)
        names = server.middleware_names
        assert names.index("SessionMiddleware") == names.index("ReadinessGate") + 1

    @pytest.mark.asyncio
    async def test_session_not_installed_when_down(self, make_server_config):
        config = make_server_config(
            environment="down", **{"server.session.enabled": True}
        )
        server, app = _setup(config)
        await build_server(server, app)
        assert "SessionMiddleware" not in server.middleware_names

    @pytest.mark.asyncio
    async def test_static_routes_attached_in_reverse(self, make_server_config, temp_dir):
        first, second = temp_dir / "first", temp_dir / "second"
        first.mkdir()
        second.mkdir()
        config = make_server_config(
            **{
                "server.compress": False,
                "server.static": [
                    {"route": "/a", "path": str(first)},
                    {"route": "/b", "path": str(second)},
                ],
            }
        )
        server, app = _setup(config)
        await build_server(server, app)

        routes = [
            d.options["route"].route
            for d in server.middleware
            if d.middleware_class is StaticRouteMiddleware
        ]
        assert routes == ["/b", "/a"]
        assert "GZipMiddleware" not in server.middleware_names

    @pytest.mark.asyncio
    async def test_stage_error_propagates(self, server_config):
        events = ExtensionPoints()

        def failing(server, app):
            raise RuntimeError("bad listener")

        events.register("configure-cache", failing)
        server, app = _setup(server_config, events)
        with pytest.raises(RuntimeError, match="bad listener"):
            await build_server(server, app)
        assert not server.built
