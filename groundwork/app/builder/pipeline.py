"""
Dependency-ordered stage runner.

Stages form a DAG. Each stage starts once all of its dependencies completed;
independent stages run concurrently on the event loop. A skippable stage
whose direct dependency returned :attr:`HookResult.SKIP` completes without
running its action, so its own dependents still run.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from .hook import HookResult

logger = logging.getLogger("groundwork.pipeline")

StageAction = Callable[[], Awaitable[HookResult | None]]


@dataclass(frozen=True)
class Stage:
    """A named unit of work in a pipeline."""

    name: str
    action: StageAction
    depends_on: tuple[str, ...] = ()
    skippable: bool = False


class PipelineError(ValueError):
    """Raised when the stage graph is malformed."""


class Pipeline:
    """
    Runs a set of stages in dependency order.

    The first stage error cancels the stages still running and is raised
    unchanged from :meth:`run`.
    """

    def __init__(self, stages: Iterable[Stage]) -> None:
        self._stages: dict[str, Stage] = {}
        for stage in stages:
            if stage.name in self._stages:
                raise PipelineError(f"duplicate stage: {stage.name}")
            self._stages[stage.name] = stage
        self._validate()

    @property
    def stages(self) -> list[Stage]:
        return list(self._stages.values())

    def _validate(self) -> None:
        for stage in self._stages.values():
            for dep in stage.depends_on:
                if dep not in self._stages:
                    raise PipelineError(f"stage {stage.name} depends on unknown stage {dep}")
        self.order()

    def order(self) -> list[str]:
        """
        Return one valid execution order (Kahn's algorithm).

        Raises:
            PipelineError: If the stages contain a cycle
        """
        remaining = {name: set(stage.depends_on) for name, stage in self._stages.items()}
        ordered: list[str] = []
        while remaining:
            ready = [name for name, deps in remaining.items() if not deps]
            if not ready:
                raise PipelineError(f"dependency cycle among: {sorted(remaining)}")
            for name in ready:
                ordered.append(name)
                del remaining[name]
            for deps in remaining.values():
                deps.difference_update(ready)
        return ordered

    async def _run_stage(self, stage: Stage, results: dict[str, HookResult]) -> HookResult:
        if stage.skippable and any(results[d] is HookResult.SKIP for d in stage.depends_on):
            logger.debug("stage skipped", extra={"stage": stage.name})
            return HookResult.CONTINUE

        logger.debug("running stage", extra={"stage": stage.name})
        result = await stage.action()
        return result if isinstance(result, HookResult) else HookResult.CONTINUE

    async def run(self) -> dict[str, HookResult]:
        """
        Execute every stage.

        Returns:
            Result of each stage by name
        """
        results: dict[str, HookResult] = {}
        pending = dict(self._stages)
        running: dict[asyncio.Task[HookResult], str] = {}

        try:
            while pending or running:
                for name, stage in list(pending.items()):
                    if all(dep in results for dep in stage.depends_on):
                        del pending[name]
                        task = asyncio.ensure_future(self._run_stage(stage, results))
                        running[task] = name

                done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    name = running.pop(task)
                    results[name] = task.result()
        finally:
            for task in running:
                task.cancel()
            if running:
                await asyncio.gather(*running, return_exceptions=True)

        return results
