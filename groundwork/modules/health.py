"""
Health check module.

Registers ``GET /_health``, answering with the worker pid and the loaded
module names. Like every route it is behind the readiness gate, so it only
answers 200 once the worker has started.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from ..app.modules import Module

if TYPE_CHECKING:
    from ..app.core.context import AppContext


class HealthModule(Module):
    name = "health"

    def init(self, app: AppContext) -> None:
        async def health() -> dict[str, Any]:
            return {"status": "ok", "pid": os.getpid(), "modules": list(app.modules)}

        app.server.router.add_api_route("/_health", health, methods=["GET"])


module = HealthModule()
