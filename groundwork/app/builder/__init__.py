"""
Server build pipeline: extension points, stage runner and the fixed stage list.
"""

from .hook import ExtensionPoints, HookResult
from .pipeline import Pipeline, PipelineError, Stage
from .stages import EXTENSION_POINTS, STARTED_EVENT, build_server, build_stages

__all__ = [
    "EXTENSION_POINTS",
    "ExtensionPoints",
    "HookResult",
    "Pipeline",
    "PipelineError",
    "STARTED_EVENT",
    "Stage",
    "build_server",
    "build_stages",
]
