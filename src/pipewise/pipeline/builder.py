"""Fluent pipeline builder and runner."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pipewise.kernel.branch import Branch
from pipewise.kernel.env import EMPTY_ENV, Env
from pipewise.kernel.errors import ErrorInfo, StepCancelled, StepExecutionError
from pipewise.kernel.result import Result
from pipewise.kernel.step import Step, SyncStep, identity
from pipewise.memory.engine import EpisodicMemoryEngine
from pipewise.memory.steps import wrap_with_memory

logger = logging.getLogger(__name__)

_UNSET: Any = object()


@dataclass(frozen=True)
class Pipeline:
    """
    Immutable pipeline under construction.

    Every builder method returns a new Pipeline; `run` executes the composed
    step and reports an uncaught step failure as Result.Failure.

    Example:
        >>> pipeline = (
        ...     Pipeline.from_branch(branch)
        ...     .record("goal", goal="Implement authentication")
        ...     .then(draft)
        ...     .with_memory(engine)
        ... )
        >>> result = await pipeline.run()
    """

    step: Step[Any, Any] | None = None
    seed: Any = _UNSET

    @staticmethod
    def from_branch(branch: Branch) -> Pipeline:
        return Pipeline(seed=branch)

    def _extend(self, step: Step[Any, Any]) -> Pipeline:
        composed = step if self.step is None else self.step.then(step)
        return Pipeline(step=composed, seed=self.seed)

    def _replace(self, fn: Callable[[Step[Any, Any]], Step[Any, Any]]) -> Pipeline:
        return Pipeline(step=fn(self.build()), seed=self.seed)

    def then(self, step: Step[Any, Any]) -> Pipeline:
        return self._extend(step)

    def map(self, fn: Callable[[Any], Any]) -> Pipeline:
        return self._replace(lambda step: step.map(fn))

    def tap(self, fn: Callable[[Any], Any]) -> Pipeline:
        return self._replace(lambda step: step.tap(fn))

    def bind(self, step: Step[Any, Any]) -> Pipeline:
        return self._replace(lambda current: current.bind(step))

    def try_result(self) -> Pipeline:
        return self._replace(lambda step: step.try_result())

    def try_option(self, predicate: Callable[[Any], bool] | None = None) -> Pipeline:
        return self._replace(lambda step: step.try_option(predicate))

    def record(self, kind: str, /, **info: Any) -> Pipeline:
        """Append an event to the Branch flowing through the pipeline."""
        return self._extend(SyncStep(lambda branch: branch.record(kind, **info), name=f"record:{kind}"))

    def with_memory(
        self,
        engine: EpisodicMemoryEngine,
        goal_extractor: Callable[[Any], str] | None = None,
        top_k: int | None = None,
        **options: Any,
    ) -> Pipeline:
        """Wrap everything built so far with episodic memory."""
        return self._replace(lambda step: wrap_with_memory(step, engine, goal_extractor, top_k, **options))

    def build(self) -> Step[Any, Any]:
        """The composed step; identity when nothing was added."""
        return self.step if self.step is not None else identity()

    async def run_traced(self, value: Any = _UNSET, env: Env | None = None) -> Result[tuple[Any, tuple[str, ...]], ErrorInfo]:
        """Run the pipeline, returning the output together with its trace logs."""
        if value is _UNSET:
            value = self.seed
        if value is _UNSET:
            raise ValueError("pipeline has no input: pass a value or build it with from_branch()")

        step = self.build()
        try:
            return Result.Success(await step._traced(value, env or EMPTY_ENV))
        except StepExecutionError as exc:
            logger.error("pipeline aborted at step '%s' on input %s: %s", exc.step, exc.input_snapshot, exc.cause)
            return Result.Failure(exc.info)
        except StepCancelled as exc:
            logger.info("pipeline cancelled at step '%s'", exc.step)
            return Result.Failure(ErrorInfo.cancelled(exc.step, exc.reason))

    async def run(self, value: Any = _UNSET, env: Env | None = None) -> Result[Any, ErrorInfo]:
        """Run the pipeline.

        Returns:
            Success(output), or Failure(ErrorInfo) naming the failing step
        """
        traced = await self.run_traced(value, env)
        return traced.map(lambda pair: pair[0])
