"""
Master/worker messages.

Messages cross the worker pipe as plain dicts::

    {"type": "app", "message": "exit", "status": 0}
    {"type": "ready"}

and are decoded into a closed union of frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from ...exceptions import IPCError


@dataclass(frozen=True)
class ExitMessage:
    """Request to exit; sent by a worker to stop the master and vice versa."""

    status: int | None = None

    def encode(self) -> dict[str, Any]:
        return {"type": "app", "message": "exit", "status": self.status}


@dataclass(frozen=True)
class ReadyMessage:
    """Sent by a worker once its listeners are bound."""

    def encode(self) -> dict[str, Any]:
        return {"type": "ready"}


Message = Union[ExitMessage, ReadyMessage]


def decode(raw: Any, strict: bool = False) -> Message | None:
    """
    Decode a wire message.

    Args:
        raw: Object received from the pipe
        strict: Raise instead of returning None for unknown shapes

    Returns:
        The decoded message, or None when the shape is unknown

    Raises:
        IPCError: If ``strict`` and the message cannot be decoded
    """
    if isinstance(raw, dict):
        kind = raw.get("type")
        if kind == "ready":
            return ReadyMessage()
        if kind == "app" and raw.get("message") == "exit":
            status = raw.get("status")
            if status is None or (isinstance(status, int) and not isinstance(status, bool)):
                return ExitMessage(status)
    if strict:
        raise IPCError("unknown message", raw=raw)
    return None
