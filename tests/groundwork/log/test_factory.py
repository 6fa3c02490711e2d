"""Tests for LoggerFactory and the module-level logging API."""

import logging
import multiprocessing as mp

import pytest

import groundwork.log as gwlog
from groundwork.log import LogConfig, LoggerFactory, MPQueueHandler
from groundwork.log.factory import category_logger_name


def _config(temp_dir=None, **kwargs):
    files = {}
    if temp_dir is not None:
        files = {
            "app": str(temp_dir / "app.log"),
            "access": str(temp_dir / "access.log"),
            "error": str(temp_dir / "error.log"),
        }
    return LogConfig(colors=False, timestamps=False, files=files, **kwargs)


@pytest.mark.unit
class TestCategoryNames:
    def test_app_is_root(self):
        assert category_logger_name("app") == "groundwork"

    def test_other_categories(self):
        assert category_logger_name("access") == "groundwork.access"


@pytest.mark.unit
class TestLoggerFactory:
    def test_console_transport(self, capsys):
        factory = LoggerFactory(_config())
        factory.configure()
        factory.get("app").info("hello", extra={"k": "v"})

        out = capsys.readouterr().out
        assert "[I] hello" in out
        assert "[k:v]" in out

    def test_silent_has_no_console(self):
        factory = LoggerFactory(_config(silent=True))
        loggers = factory.configure()
        assert "console" not in factory.transports
        assert loggers["app"].handlers == []

    def test_unconfigured_file_transports_skipped(self):
        factory = LoggerFactory(_config())
        factory.configure()
        assert set(factory.transports) == {"console"}

    def test_file_transports(self, temp_dir):
        factory = LoggerFactory(_config(temp_dir, silent=True))
        factory.configure()

        factory.get("app").info("app line")
        factory.get("app").error("error line")
        factory.get("access").info("GET / 200")
        factory.close()

        app_log = (temp_dir / "app.log").read_text()
        error_log = (temp_dir / "error.log").read_text()
        access_log = (temp_dir / "access.log").read_text()
        assert "app line" in app_log and "error line" in app_log
        assert "error line" in error_log and "app line" not in error_log
        assert access_log.strip().endswith("] GET / 200")

    def test_module_loggers_propagate_into_app(self, capsys):
        factory = LoggerFactory(_config())
        factory.configure()
        logging.getLogger("groundwork.somewhere").info("from module")
        assert "from module" in capsys.readouterr().out

    def test_access_does_not_propagate(self, capsys):
        factory = LoggerFactory(_config())
        factory.configure()
        factory.get("access").info("GET / 200")
        assert capsys.readouterr().out == ""

    def test_category_level_is_min_handler_level(self, temp_dir):
        factory = LoggerFactory(_config(temp_dir, level=logging.WARNING))
        loggers = factory.configure()
        assert loggers["app"].level == logging.INFO

    def test_category_without_handlers_is_disabled(self):
        factory = LoggerFactory(_config())
        loggers = factory.configure()
        assert loggers["access"].level > logging.CRITICAL

    def test_attach_queue(self):
        queue = mp.get_context("fork").Queue()
        factory = LoggerFactory(_config())
        factory.configure()
        factory.attach_queue(queue)

        for category in ("app", "access"):
            handlers = factory.get(category).handlers
            assert len(handlers) == 1
            assert isinstance(handlers[0], MPQueueHandler)
        assert factory.transports == {}


@pytest.mark.unit
class TestModuleApi:
    def test_get_logger_before_init(self):
        assert gwlog.get_factory() is None
        assert gwlog.get_logger("access").name == "groundwork.access"

    def test_init_replaces_factory(self):
        first = gwlog.init(_config(silent=True))
        second = gwlog.init(_config(silent=True))
        assert gwlog.get_factory() is second
        assert first is not second
        assert gwlog.get_logger().name == "groundwork"
