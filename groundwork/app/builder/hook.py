"""
Extension points for the server build pipeline.

An extension point is a named event. Modules register listeners for it and
the pipeline emits it at a fixed position. A listener can veto the default
behavior that follows the event by returning :attr:`HookResult.SKIP`.
"""

from __future__ import annotations

import enum
import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger("groundwork.hook")


class HookResult(enum.Enum):
    """Outcome of emitting an extension point."""

    CONTINUE = "continue"
    SKIP = "skip"


@dataclass
class _Listener:
    callback: Callable[..., Any]
    priority: int = 0
    once: bool = False
    condition: Callable[..., bool] | None = None


class ExtensionPoints:
    """
    Registry of extension point listeners.

    There is no cap on the number of listeners per event.

    Example:
        points = ExtensionPoints()

        @points.on("configure-static")
        def no_static(server, app):
            return HookResult.SKIP

        result = await points.emit("configure-static", server, app)
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[_Listener]] = defaultdict(list)

    def register(
        self,
        event: str,
        callback: Callable[..., Any],
        priority: int = 0,
        once: bool = False,
        condition: Callable[..., bool] | None = None,
    ) -> None:
        """
        Register a listener for an event.

        Args:
            event: Event name
            callback: Sync or async callable receiving the emitted arguments
            priority: Listener priority (higher numbers run first)
            once: Whether to remove the listener after its first call
            condition: Optional predicate over the emitted arguments
        """
        listeners = self._listeners[event]
        listeners.append(_Listener(callback, priority, once, condition))
        # Stable sort keeps registration order among equal priorities
        listeners.sort(key=lambda entry: entry.priority, reverse=True)

    def on(
        self, event: str, priority: int = 0, once: bool = False
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of :meth:`register`."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.register(event, func, priority=priority, once=once)
            return func

        return decorator

    async def emit(self, event: str, *args: Any, **kwargs: Any) -> HookResult:
        """
        Call every listener of an event in priority order.

        Async listeners are awaited. Errors propagate to the caller and stop
        the remaining listeners.

        Returns:
            ``HookResult.SKIP`` if any listener returned it, else ``CONTINUE``
        """
        result = HookResult.CONTINUE
        for entry in list(self._listeners.get(event, ())):
            if entry.condition is not None and not entry.condition(*args, **kwargs):
                continue

            if entry.once:
                self._listeners[event].remove(entry)

            value = entry.callback(*args, **kwargs)
            if inspect.isawaitable(value):
                value = await value
            if value is HookResult.SKIP:
                result = HookResult.SKIP

        logger.debug("emitted event", extra={"event": event, "result": result.value})
        return result

    def has_listeners(self, event: str) -> bool:
        """Check if there are any listeners for an event."""
        return bool(self._listeners.get(event))

    def get_listeners(self, event: str) -> list[Callable[..., Any]]:
        """Get all listeners for an event, in call order."""
        return [entry.callback for entry in self._listeners.get(event, ())]

    def clear(self, event: str | None = None) -> None:
        """Clear listeners for an event or all events."""
        if event:
            self._listeners.pop(event, None)
        else:
            self._listeners.clear()
