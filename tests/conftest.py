"""
Pytest configuration and shared fixtures.

This module provides central pytest configuration, custom markers,
and shared fixtures for the groundwork test suite.
"""

import asyncio
import logging
import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from groundwork.config import Config, ServerConfig
from groundwork.log import Logger

# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (may use network, filesystem)"
    )
    config.addinivalue_line("markers", "property: Property-based tests")
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests (full system integration)"
    )
    config.addinivalue_line("markers", "slow: Tests that take >1 second to run")


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """
    Reset groundwork logger state after each test.

    Category loggers are module-level singletons in ``logging``; tests that
    configure transports must not leak handlers into later tests.
    """
    import groundwork.log as gwlog

    yield

    factory = gwlog.get_factory()
    if factory is not None:
        factory.close()
    gwlog._factory = None
    for name in list(logging.root.manager.loggerDict):
        if name == "groundwork" or name.startswith("groundwork."):
            lg = logging.getLogger(name)
            for handler in list(lg.handlers):
                lg.removeHandler(handler)
            lg.setLevel(logging.NOTSET)
            lg.propagate = True
    logging.setLoggerClass(Logger)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Provide a temporary directory that is cleaned up after the test.

    Yields:
        Path: Temporary directory path
    """
    temp_path = Path(tempfile.mkdtemp(prefix="groundwork-test-", dir="/tmp"))
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def config() -> Config:
    """Default configuration without environment overrides."""
    return Config(enable_env_overrides=False)


def _server_config(**overrides) -> ServerConfig:
    return ServerConfig.from_config(
        Config(overrides=overrides, enable_env_overrides=False)
    )


@pytest.fixture
def make_server_config():
    """Factory building a frozen server config from dot-path overrides."""
    return _server_config


@pytest.fixture
def server_config() -> ServerConfig:
    """Server config for tests: one worker, no static routes, no TLS."""
    return _server_config(**{"server.workers": 1})


class Built:
    """A built server with its context and a test client."""

    def __init__(self, server, app):
        from starlette.testclient import TestClient

        self.server = server
        self.app = app
        self.client = TestClient(server.app)

    @property
    def router(self):
        return self.server.router


@pytest.fixture
def build():
    """
    Build a server through the full stage sequence.

    Usage:
        built = build(**{"server.compress": False}, started=True)
    """
    from groundwork.app.builder.hook import ExtensionPoints
    from groundwork.app.builder.stages import build_server
    from groundwork.app.core.context import AppContext
    from groundwork.app.http.server import WebServer

    def _build(events=None, started=True, **overrides):
        server_config = _server_config(**overrides)
        server = WebServer(server_config)
        app = AppContext(
            Config(overrides=overrides, enable_env_overrides=False),
            server_config,
            events=events or ExtensionPoints(),
            server=server,
        )
        asyncio.run(build_server(server, app))
        if started:
            app.mark_started()
        return Built(server, app)

    return _build
