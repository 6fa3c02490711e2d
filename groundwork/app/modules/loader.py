"""
Sequential module loader.

Entries of the configured module list are resolved to module objects,
registered in the application context, then initialized strictly one after
another. The first failure aborts the sequence; modules initialized before
it stay registered.

Entries may be:

- a :class:`Module` instance or subclass
- an absolute filesystem path, or a path containing a separator
  (``./modules/hello.py``)
- a dotted import path (``myapp.modules.hello`` or ``myapp.modules:Hello``)
- a bare name, resolved below ``groundwork.modules`` (``health``)

A Python module used as an entry must export a ``module`` attribute (a
:class:`Module` instance or subclass), or provide ``name`` and ``init``
itself.
"""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import logging
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any

from ...exceptions import ModuleError
from .base import LoadedModule, Module

if TYPE_CHECKING:
    from ...dot_dict import DotDict
    from ..core.context import AppContext

logger = logging.getLogger("groundwork.modules")

DEFAULT_PACKAGE = "groundwork.modules"


def _is_path(entry: str) -> bool:
    return os.path.isabs(entry) or os.sep in entry or "/" in entry or entry.endswith(".py")


def _import_file(path: str) -> ModuleType:
    resolved = Path(path).resolve()
    if resolved.is_dir():
        resolved = resolved / "__init__.py"
    import_name = f"groundwork_module_{resolved.parent.name}_{resolved.stem}"
    if import_name in sys.modules:
        return sys.modules[import_name]
    spec = importlib.util.spec_from_file_location(import_name, resolved)
    if spec is None or spec.loader is None:
        raise ImportError(f"cannot import module from {resolved}")
    pymod = importlib.util.module_from_spec(spec)
    sys.modules[import_name] = pymod
    try:
        spec.loader.exec_module(pymod)
    except BaseException:
        sys.modules.pop(import_name, None)
        raise
    return pymod


def _coerce(obj: Any, source: str) -> Any:
    """Turn an imported object into a module object."""
    if inspect.isclass(obj) and issubclass(obj, Module):
        return obj()
    if isinstance(obj, Module):
        return obj
    if isinstance(obj, ModuleType) and hasattr(obj, "module"):
        return _coerce(obj.module, source)
    if getattr(obj, "name", None) and callable(getattr(obj, "init", None)):
        return obj
    raise TypeError(f"{source} does not provide a module (expected name and init)")


class ModuleLoader:
    """
    Resolves and initializes modules.

    Args:
        default_package: Package bare module names are resolved in
    """

    def __init__(self, default_package: str = DEFAULT_PACKAGE) -> None:
        self.default_package = default_package

    def resolve(self, entry: Any) -> Any:
        """
        Resolve one module list entry to a module object.

        Raises:
            ImportError: If the entry cannot be imported
            TypeError: If the imported object is not a module
        """
        if not isinstance(entry, str):
            return _coerce(entry, repr(entry))

        if _is_path(entry):
            return _coerce(_import_file(entry), entry)

        target, _, attr = entry.partition(":")
        if "." not in target:
            target = f"{self.default_package}.{target}"
        pymod = importlib.import_module(target)
        return _coerce(getattr(pymod, attr) if attr else pymod, entry)

    async def load(self, entries: Iterable[Any], app: AppContext) -> list[LoadedModule]:
        """
        Resolve, register and initialize modules in order.

        Returns:
            Descriptors of every module, all marked loaded

        Raises:
            ModuleError: On the first resolution or init failure
        """
        descriptors: list[LoadedModule] = []
        for entry in entries:
            logger.info("loading module", extra={"module": str(entry)})
            try:
                module = self.resolve(entry)
            except Exception as e:
                raise ModuleError(
                    "Error initializing module.", module=str(entry), cause=e
                ) from e
            app.register_module(module)
            descriptors.append(LoadedModule(name=module.name, module=module))
            logger.debug("loaded module", extra={"module": str(entry), "name": module.name})

        for descriptor in descriptors:
            logger.info("initializing module", extra={"module": descriptor.name})
            try:
                result = descriptor.module.init(app)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                raise ModuleError(
                    "Error initializing module.", module=descriptor.name, cause=e
                ) from e
            descriptor.loaded = True
            logger.debug("module initialized", extra={"module": descriptor.name})

        return descriptors

    async def load_all(self, entries: Iterable[Any], app: AppContext) -> ModuleError | None:
        """Like :meth:`load`, returning the error instead of raising it."""
        try:
            await self.load(entries, app)
        except ModuleError as e:
            return e
        return None

    def init_master(self, entries: Iterable[Any], config: DotDict) -> None:
        """
        Run ``init_master`` of every module that defines it.

        Raises:
            ModuleError: If resolution or a hook fails
        """
        for entry in entries:
            try:
                module = self.resolve(entry)
                hook = getattr(module, "init_master", None)
                if callable(hook):
                    hook(config)
            except Exception as e:
                raise ModuleError(
                    "Error initializing module.", module=str(entry), cause=e
                ) from e
