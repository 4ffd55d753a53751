"""Memory-augmented steps.

wrap_with_memory decorates any step so that each invocation recalls similar
episodes, runs the step, and stores exactly one new episode. The wrapped
step keeps its input and output, so it composes with `then` like the
original. Also registered as the `with_memory` step operation.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from datetime import timedelta
from typing import Any, TypeVar

from pipewise.kernel.branch import Branch, DataSource
from pipewise.kernel.env import Env
from pipewise.kernel.errors import ErrorInfo, MemoryDurabilityError, StepExecutionError, snapshot
from pipewise.kernel.result import Result
from pipewise.kernel.step import AsyncStep, ContextualStep, Step
from pipewise.memory.engine import EpisodicMemoryEngine
from pipewise.memory.models import ConsolidationStrategy, ExecutionContext, Outcome, RetrievedEpisode

logger = logging.getLogger(__name__)

In = TypeVar("In")
Out = TypeVar("Out")

RecallHook = Callable[[Any, Sequence[RetrievedEpisode]], None]


def goal_from_branch(branch: Branch) -> str:
    """Describe what a branch is working on.

    The latest `goal` event wins, then the latest reasoning text, then a
    description derived from the branch name.
    """
    for event in reversed(branch.events):
        if event.kind == "goal" and event.info.get("goal"):
            return str(event.info["goal"])
    for event in reversed(branch.events):
        if event.kind == "reasoning" and event.info.get("text"):
            return str(event.info["text"])
    return f"Execute pipeline branch '{branch.name}'"


def _error_of(result: Result[Any, ErrorInfo]) -> ErrorInfo:
    return result.match(lambda _: ErrorInfo.external("no error"), lambda error: error)


class _Recorder:
    """Best-effort recall and storage around one wrapped invocation."""

    def __init__(
        self,
        step: Step[Any, Any],
        engine: EpisodicMemoryEngine,
        goal_extractor: Callable[[Any], str],
        top_k: int,
        require_durability: bool,
        on_recall: RecallHook | None,
    ) -> None:
        self.step = step
        self.engine = engine
        self.goal_extractor = goal_extractor
        self.top_k = top_k
        self.require_durability = require_durability
        self.on_recall = on_recall

    def _memory_failed(self, what: str, info: ErrorInfo) -> None:
        message = f"memory {what} for step '{self.step.name}' failed: {info.message}"
        if self.require_durability:
            raise MemoryDurabilityError(message)
        logger.warning(message)

    def _branch_of(self, value: Any) -> Branch:
        if isinstance(value, Branch):
            return value
        return Branch(name=self.step.name, store=_NO_STORE, data_source=_NO_SOURCE)

    async def around(self, value: Any, execute: Callable[[], Awaitable[Any]], output_of: Callable[[Any], Any]) -> Any:
        goal = self.goal_extractor(value)
        if not goal.strip():
            goal = f"Execute step '{self.step.name}'"

        recalled = await self.engine.retrieve_similar_episodes(goal, self.top_k)
        if recalled.is_failure:
            self._memory_failed("recall", _error_of(recalled))
        elif self.on_recall is not None:
            self.on_recall(value, recalled.get_or_default([]))

        context = ExecutionContext.with_goal(goal)
        metadata = {
            "step": self.step.name,
            "input": snapshot(value),
            "recalled": len(recalled.get_or_default([])),
        }

        start = time.perf_counter()
        try:
            produced = await execute()
        except StepExecutionError as exc:
            duration = timedelta(seconds=time.perf_counter() - start)
            outcome = Outcome.failed(str(exc), duration, [str(exc.cause)])
            stored = await self.engine.store_episode(self._branch_of(value), context, outcome, metadata)
            if stored.is_failure:
                logger.warning("memory store for failed step '%s' failed: %s", self.step.name, _error_of(stored))
            raise

        duration = timedelta(seconds=time.perf_counter() - start)
        summary = snapshot(output_of(produced))[: self.engine.config.summary_chars]
        outcome = Outcome.successful(summary, duration)
        stored = await self.engine.store_episode(self._branch_of(value), context, outcome, metadata)
        if stored.is_failure:
            self._memory_failed("store", _error_of(stored))
        return produced


class _NoStore:
    """Placeholder store for episodes of steps whose input is not a Branch."""

    def add(self, doc_id: str, document: Any) -> None:
        raise TypeError("placeholder store is read-only")

    def get(self, doc_id: str) -> Any | None:
        return None

    def __len__(self) -> int:
        return 0


_NO_STORE = _NoStore()
_NO_SOURCE = DataSource("memory://none")


def wrap_with_memory(
    step: Step[In, Out],
    engine: EpisodicMemoryEngine,
    goal_extractor: Callable[[In], str] | None = None,
    top_k: int | None = None,
    *,
    require_durability: bool | None = None,
    on_recall: RecallHook | None = None,
) -> Step[In, Out]:
    """Wrap `step` with episodic memory.

    Args:
        step: The step to wrap; its output is returned unchanged
        engine: Memory engine to recall from and store into
        goal_extractor: Describes the goal of an input; defaults to
            goal_from_branch for Branch inputs and str() otherwise. A blank
            goal falls back to one derived from the step name
        top_k: Episodes to recall; defaults to the engine config
        require_durability: Raise MemoryDurabilityError when memory I/O
            fails; defaults to the engine config
        on_recall: Called with the input and the recalled episodes

    Returns:
        A contextual step if `step` is contextual, an async step otherwise
    """
    extractor = goal_extractor or _default_goal
    recorder = _Recorder(
        step,
        engine,
        extractor,
        engine.config.top_k if top_k is None else top_k,
        engine.config.require_durability if require_durability is None else require_durability,
        on_recall,
    )
    name = f"{step.name}+memory"

    if isinstance(step, ContextualStep):
        async def run_contextual(value: In, env: Env) -> tuple[Out, tuple[str, ...]]:
            return await recorder.around(value, lambda: step.run(value, env), lambda traced: traced[0])

        return ContextualStep(run_contextual, name=name)

    async def run(value: In, env: Env) -> Out:
        return await recorder.around(value, lambda: step.to_async().run(value, env), lambda out: out)

    return AsyncStep(run, name=name)


def _default_goal(value: Any) -> str:
    if isinstance(value, Branch):
        return goal_from_branch(value)
    return str(value)


def retrieve_episodes_step(
    engine: EpisodicMemoryEngine,
    query: str,
    top_k: int = 5,
    min_similarity: float | None = None,
) -> AsyncStep[Branch, Branch]:
    """A branch step that records the episodes recalled for `query`."""

    async def run(branch: Branch, env: Env) -> Branch:
        result = await engine.retrieve_similar_episodes(query, top_k, min_similarity)
        return result.match(
            lambda episodes: branch.record(
                "episodes_retrieved",
                query=query,
                episodes=tuple((item.episode.id, item.goal, item.similarity) for item in episodes),
            ),
            lambda error: branch.record("memory_error", operation="retrieve", kind=error.kind, message=error.message),
        )

    return AsyncStep(run, name="retrieve_episodes")


def consolidate_memories_step(
    engine: EpisodicMemoryEngine,
    older_than: timedelta,
    strategy: ConsolidationStrategy = ConsolidationStrategy.PRUNE,
) -> AsyncStep[Branch, Branch]:
    """A branch step that consolidates memories and records the report."""

    async def run(branch: Branch, env: Env) -> Branch:
        result = await engine.consolidate_memories(older_than, strategy)
        return result.match(
            lambda report: branch.record(
                "memories_consolidated",
                strategy=report.strategy.value,
                examined=report.examined,
                pruned=len(report.pruned),
                consolidated=len(report.consolidated),
                dissolved=len(report.dissolved),
            ),
            lambda error: branch.record("memory_error", operation="consolidate", kind=error.kind, message=error.message),
        )

    return AsyncStep(run, name="consolidate_memories")


def with_memory(
    self: Step[Any, Any],
    engine: EpisodicMemoryEngine,
    goal_extractor: Callable[[Any], str] | None = None,
    top_k: int | None = None,
    **options: Any,
) -> Step[Any, Any]:
    """Wrap this step with episodic memory.

    Example:
        >>> step = SyncStep(plan).with_memory(engine, goal_from_branch, top_k=3)
    """
    return wrap_with_memory(self, engine, goal_extractor, top_k, **options)


# Register the with_memory operation
Step.register_op("with_memory", with_memory)
