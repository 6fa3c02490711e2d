"""
Module contract.

A module is a named unit of application functionality loaded into every
worker. It receives the application context in :meth:`Module.init` and may
register routes, handlers and event listeners there.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ...dot_dict import DotDict
    from ..core.context import AppContext


class Module(ABC):
    """
    Base class for application modules.

    Example:
        class Hello(Module):
            name = "hello"

            def init(self, app):
                app.server.router.add_api_route("/hello", lambda: {"hello": "world"})
    """

    name: str = ""

    def __init__(self, name: str | None = None) -> None:
        """
        Initialize the module.

        Args:
            name: Module name (defaults to the class attribute, then the
                lowercased class name)
        """
        self.name = name or self.name or self.__class__.__name__.lower()

    @abstractmethod
    def init(self, app: AppContext) -> Awaitable[None] | None:
        """
        Initialize the module in a worker.

        May be a coroutine function. Raising aborts worker startup.
        """

    def init_master(self, config: DotDict) -> None:
        """
        Run once in the master before workers are forked.

        Used for one-time setup such as creating database schemas.
        """


@dataclass
class LoadedModule:
    """A resolved module and whether its init completed."""

    name: str
    module: Any
    loaded: bool = False
