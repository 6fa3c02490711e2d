"""Tests for the sequential module loader."""

import asyncio
from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from groundwork.app.core.context import AppContext
from groundwork.app.modules import Module, ModuleLoader
from groundwork.exceptions import ModuleError
from groundwork.modules.health import HealthModule


class Recorder(Module):
    def __init__(self, name, log, fail=False, delay=0.0):
        super().__init__(name)
        self.log = log
        self.fail = fail
        self.delay = delay

    async def init(self, app):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError(f"{self.name} failed")
        self.log.append(self.name)


class Named(Module):
    def init(self, app):
        return None


@pytest.fixture
def app(config, server_config):
    return AppContext(config, server_config)


@pytest.mark.unit
class TestModuleContract:
    def test_default_name_is_class_name(self):
        assert Named().name == "named"

    def test_class_attribute_name(self):
        assert HealthModule().name == "health"

    def test_explicit_name(self):
        assert Named("custom").name == "custom"

    def test_init_master_is_optional(self):
        assert Named().init_master(None) is None


@pytest.mark.unit
class TestResolve:
    def test_instance(self):
        module = Named()
        assert ModuleLoader().resolve(module) is module

    def test_class(self):
        assert isinstance(ModuleLoader().resolve(Named), Named)

    def test_bare_name_uses_default_package(self):
        assert isinstance(ModuleLoader().resolve("health"), HealthModule)

    def test_dotted_with_attribute(self):
        module = ModuleLoader().resolve("groundwork.modules.health:HealthModule")
        assert isinstance(module, HealthModule)

    def test_file_path(self, temp_dir):
        path = temp_dir / "greeter.py"
        path.write_text(
            "from groundwork.app.modules import Module\n"
            "class Greeter(Module):\n"
            "    name = 'greeter'\n"
            "    def init(self, app):\n"
            "        app.greeted = True\n"
            "module = Greeter\n"
        )
        assert ModuleLoader().resolve(str(path)).name == "greeter"

    def test_duck_typed_object(self):
        duck = SimpleNamespace(name="duck", init=lambda app: None)
        assert ModuleLoader().resolve(duck) is duck

    def test_not_a_module(self):
        with pytest.raises(TypeError):
            ModuleLoader().resolve(object())

    def test_missing_import(self):
        with pytest.raises(ImportError):
            ModuleLoader().resolve("does_not_exist_anywhere")


@pytest.mark.unit
class TestLoad:
    @pytest.mark.asyncio
    async def test_inits_in_order(self, app):
        log = []
        modules = [
            Recorder("slow", log, delay=0.02),
            Recorder("fast", log),
            Recorder("last", log),
        ]
        loaded = await ModuleLoader().load(modules, app)

        assert log == ["slow", "fast", "last"]
        assert [d.name for d in loaded] == ["slow", "fast", "last"]
        assert all(d.loaded for d in loaded)
        assert list(app.modules) == ["slow", "fast", "last"]

    @pytest.mark.asyncio
    async def test_aborts_at_first_failure(self, app):
        log = []
        cause_module = Recorder("broken", log, fail=True)
        modules = [Recorder("first", log), cause_module, Recorder("never", log)]

        with pytest.raises(ModuleError) as info:
            await ModuleLoader().load(modules, app)

        err = info.value
        assert log == ["first"]
        assert err.module == "broken"
        assert isinstance(err.cause, RuntimeError)
        assert str(err.cause) == "broken failed"
        assert err.message == "Error initializing module."
        assert app.module("first").name == "first"

    @pytest.mark.asyncio
    async def test_sync_init(self, app):
        init = Mock(return_value=None)
        duck = SimpleNamespace(name="sync", init=init)
        await ModuleLoader().load([duck], app)
        init.assert_called_once_with(app)

    @pytest.mark.asyncio
    async def test_resolution_failure(self, app):
        with pytest.raises(ModuleError) as info:
            await ModuleLoader().load(["does_not_exist_anywhere"], app)
        assert info.value.module == "does_not_exist_anywhere"
        assert isinstance(info.value.cause, ImportError)

    @pytest.mark.asyncio
    async def test_load_all_returns_error(self, app):
        err = await ModuleLoader().load_all([Recorder("bad", [], fail=True)], app)
        assert isinstance(err, ModuleError)
        assert await ModuleLoader().load_all([], app) is None


@pytest.mark.unit
class TestInitMaster:
    def test_calls_hooks(self, config):
        hook = Mock()
        duck = SimpleNamespace(name="db", init=lambda app: None, init_master=hook)
        ModuleLoader().init_master([duck, Named()], config)
        hook.assert_called_once_with(config)

    def test_failure_wrapped(self, config):
        def failing(cfg):
            raise OSError("schema")

        duck = SimpleNamespace(name="db", init=lambda app: None, init_master=failing)
        with pytest.raises(ModuleError) as info:
            ModuleLoader().init_master([duck], config)
        assert isinstance(info.value.cause, OSError)
