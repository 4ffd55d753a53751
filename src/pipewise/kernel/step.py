"""Step arrows - the composable units of a pipeline.

Three closed variants share one runnable capability:

- SyncStep: In -> Out, runs to completion without suspending
- AsyncStep: In -> awaitable Out, may suspend and can be cancelled
- ContextualStep: (In, Env.context) -> awaitable (Out, logs)

Composition always widens to the more general shape
(sync < async < contextual) and never narrows.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, Literal, TypeVar

from pipewise.kernel.env import EMPTY_ENV, Env
from pipewise.kernel.errors import ErrorInfo, StepExecutionError
from pipewise.kernel.result import Option, Result

logger = logging.getLogger(__name__)

In = TypeVar("In")
Out = TypeVar("Out")
R = TypeVar("R")

Mode = Literal["sync", "async", "contextual"]
Logs = tuple[str, ...]

_RANK: dict[str, int] = {"sync": 0, "async": 1, "contextual": 2}

# Extension registry - class-level storage for Step capabilities
_extensions_registry: dict[str, Callable[..., Any]] = {}


def _name_of(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__name__", None) or type(fn).__name__


def _wrap_failure(name: str, value: Any, exc: Exception) -> StepExecutionError:
    logger.debug("step %s raised %r", name, exc)
    return StepExecutionError(name, value, exc)


class Step(Generic[In, Out]):
    """Common capability of every step shape.

    Capabilities can be registered via register_op() for extensibility.
    """

    mode: ClassVar[Mode]
    name: str

    @classmethod
    def register_op(cls, name: str, fn: Callable[..., Any]) -> None:
        """Register an operation capability on every step class.

        Args:
            name: The operation name (e.g., "with_memory")
            fn: The function to register; receives the step as first argument
        """
        _extensions_registry[name] = fn

    def __getattr__(self, name: str) -> Any:
        """Allow calling registered extension methods."""
        if name in _extensions_registry:
            fn = _extensions_registry[name]
            return lambda *args, **kwargs: fn(self, *args, **kwargs)
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    async def _traced(self, value: In, env: Env) -> tuple[Out, Logs]:
        """Run in the most general shape: output plus trace logs."""
        raise NotImplementedError

    def then(self, other: Step[Out, R]) -> Step[In, R]:
        """Sequential composition: the output of self becomes the input of other."""
        return then(self, other)

    def bind(self, other: Step[Any, Any]) -> Step[In, Any]:
        """Kleisli composition over a Result or Option output.

        Failure and Nothing short-circuit without running `other`. A plain
        output of `other` is wrapped back into the same monad.
        """
        return then(self, _monadic(other))

    def map(self, fn: Callable[[Out], R]) -> Step[In, R]:
        raise NotImplementedError

    def tap(self, fn: Callable[[Out], Any]) -> Step[In, Out]:
        """Run a side effect on the output and pass the output through."""
        def tapped(value: Out) -> Out:
            fn(value)
            return value

        tapped.__name__ = f"{self.name}.tap"
        return self.map(tapped)

    def recover(self, fn: Callable[[Any], Any]) -> Step[In, Any]:
        """Collapse a Result output: success values pass, failures go through fn."""
        def collapse(result: Result[Any, Any]) -> Any:
            return result.match(lambda v: v, fn)

        collapse.__name__ = f"{self.name}.recover"
        return self.map(collapse)

    def try_result(self) -> Step[In, Result[Out, ErrorInfo]]:
        raise NotImplementedError

    def try_option(self, predicate: Callable[[Out], bool] | None = None) -> Step[In, Option[Out]]:
        """Wrap the output in Option; values failing `predicate` become Nothing.

        The default predicate treats None as absent. A step that raises also
        yields Nothing; cancellation still propagates.
        """
        keep = predicate or (lambda v: v is not None)

        def present(result: Result[Out, ErrorInfo]) -> Option[Out]:
            return result.match(
                lambda value: Option.Some(value) if keep(value) else Option.Nothing(),
                lambda _: Option.Nothing(),
            )

        present.__name__ = f"{self.name}.option"
        return self.try_result().map(present)

    def to_async(self) -> AsyncStep[In, Out]:
        raise NotImplementedError


@dataclass(frozen=True)
class SyncStep(Step[In, Out]):
    """Pure synchronous step."""

    _fn: Callable[[In], Out]
    name: str = ""

    mode: ClassVar[Mode] = "sync"

    def __post_init__(self) -> None:
        if not self.name:
            object.__setattr__(self, "name", _name_of(self._fn))

    def invoke(self, value: In) -> Out:
        try:
            return self._fn(value)
        except StepExecutionError:
            raise
        except Exception as exc:
            raise _wrap_failure(self.name, value, exc) from exc

    def __call__(self, value: In) -> Out:
        return self.invoke(value)

    async def run(self, value: In, env: Env | None = None) -> Out:
        (env or EMPTY_ENV).checkpoint(self.name)
        return self.invoke(value)

    async def _traced(self, value: In, env: Env) -> tuple[Out, Logs]:
        return await self.run(value, env), ()

    def map(self, fn: Callable[[Out], R]) -> SyncStep[In, R]:
        return SyncStep(lambda value: fn(self.invoke(value)), name=f"{self.name}.map")

    def try_result(self) -> SyncStep[In, Result[Out, ErrorInfo]]:
        def guarded(value: In) -> Result[Out, ErrorInfo]:
            try:
                return Result.Success(self.invoke(value))
            except StepExecutionError as exc:
                return Result.Failure(exc.info)

        return SyncStep(guarded, name=self.name)

    def to_async(self) -> AsyncStep[In, Out]:
        async def lifted(value: In, env: Env) -> Out:
            return await self.run(value, env)

        return AsyncStep(lifted, name=self.name)

    @staticmethod
    def identity() -> SyncStep[Any, Any]:
        return SyncStep(lambda value: value, name="identity")


@dataclass(frozen=True)
class AsyncStep(Step[In, Out]):
    """Suspending step.

    `_run` receives the value and the Env explicitly; use AsyncStep.of() to
    build one from a plain `async def fn(value)`.
    """

    _run: Callable[[In, Env], Awaitable[Out]]
    name: str = ""

    mode: ClassVar[Mode] = "async"

    def __post_init__(self) -> None:
        if not self.name:
            object.__setattr__(self, "name", _name_of(self._run))

    @staticmethod
    def of(fn: Callable[[In], Awaitable[Out]], name: str | None = None) -> AsyncStep[In, Out]:
        """Build a cancellable async step from `async def fn(value)`."""
        step_name = name or _name_of(fn)

        async def run(value: In, env: Env) -> Out:
            if env.cancel is None:
                return await fn(value)
            return await env.cancel.guard(fn(value), step_name)

        return AsyncStep(run, name=step_name)

    async def run(self, value: In, env: Env | None = None) -> Out:
        env = env or EMPTY_ENV
        env.checkpoint(self.name)
        try:
            return await self._run(value, env)
        except StepExecutionError:
            raise
        except Exception as exc:
            raise _wrap_failure(self.name, value, exc) from exc

    async def _traced(self, value: In, env: Env) -> tuple[Out, Logs]:
        return await self.run(value, env), ()

    def map(self, fn: Callable[[Out], R]) -> AsyncStep[In, R]:
        async def mapped(value: In, env: Env) -> R:
            return fn(await self.run(value, env))

        return AsyncStep(mapped, name=f"{self.name}.map")

    def try_result(self) -> AsyncStep[In, Result[Out, ErrorInfo]]:
        async def guarded(value: In, env: Env) -> Result[Out, ErrorInfo]:
            try:
                return Result.Success(await self.run(value, env))
            except StepExecutionError as exc:
                return Result.Failure(exc.info)

        return AsyncStep(guarded, name=self.name)

    def to_async(self) -> AsyncStep[In, Out]:
        return self


@dataclass(frozen=True)
class ContextualStep(Step[In, Out]):
    """Async step that reads the shared Env.context and emits trace logs.

    `run` returns `(output, logs)`; logs of composed steps are concatenated in
    execution order.
    """

    _run: Callable[[In, Env], Awaitable[tuple[Out, Logs]]]
    name: str = ""

    mode: ClassVar[Mode] = "contextual"

    def __post_init__(self) -> None:
        if not self.name:
            object.__setattr__(self, "name", _name_of(self._run))

    @staticmethod
    def of(fn: Callable[[In, Any], Awaitable[tuple[Out, Any]]], name: str | None = None) -> ContextualStep[In, Out]:
        """Build a contextual step from `async def fn(value, context) -> (out, logs)`."""
        step_name = name or _name_of(fn)

        async def run(value: In, env: Env) -> tuple[Out, Logs]:
            work = fn(value, env.context)
            out, logs = await (work if env.cancel is None else env.cancel.guard(work, step_name))
            return out, tuple(logs)

        return ContextualStep(run, name=step_name)

    @staticmethod
    def lift_pure(fn: Callable[[In], Out], log: str, name: str | None = None) -> ContextualStep[In, Out]:
        """Lift a pure function, recording `log` when it runs."""
        return ContextualStep.from_step(SyncStep(fn, name=name or _name_of(fn)), log)

    @staticmethod
    def from_step(step: Step[In, Out], log: str) -> ContextualStep[In, Out]:
        """Lift a sync or async step, recording `log` after it runs."""
        async def run(value: In, env: Env) -> tuple[Out, Logs]:
            out, logs = await step._traced(value, env)
            return out, logs + (log,)

        return ContextualStep(run, name=step.name)

    async def run(self, value: In, env: Env | None = None) -> tuple[Out, Logs]:
        env = env or EMPTY_ENV
        env.checkpoint(self.name)
        try:
            return await self._run(value, env)
        except StepExecutionError:
            raise
        except Exception as exc:
            raise _wrap_failure(self.name, value, exc) from exc

    async def _traced(self, value: In, env: Env) -> tuple[Out, Logs]:
        return await self.run(value, env)

    def map(self, fn: Callable[[Out], R]) -> ContextualStep[In, R]:
        async def mapped(value: In, env: Env) -> tuple[R, Logs]:
            out, logs = await self.run(value, env)
            return fn(out), logs

        return ContextualStep(mapped, name=f"{self.name}.map")

    def try_result(self) -> ContextualStep[In, Result[Out, ErrorInfo]]:
        async def guarded(value: In, env: Env) -> tuple[Result[Out, ErrorInfo], Logs]:
            try:
                out, logs = await self.run(value, env)
            except StepExecutionError as exc:
                return Result.Failure(exc.info), (f"{exc.step} failed: {exc.cause}",)
            return Result.Success(out), logs

        return ContextualStep(guarded, name=self.name)

    def to_async(self) -> AsyncStep[In, Out]:
        raise TypeError("a contextual step cannot be narrowed to an async step")


def _widen(step: Step[Any, Any], mode: Mode) -> Step[Any, Any]:
    if step.mode == mode:
        return step
    if mode == "async":
        return step.to_async()
    if mode == "contextual":
        async def run(value: Any, env: Env) -> tuple[Any, Logs]:
            return await step._traced(value, env)

        return ContextualStep(run, name=step.name)
    raise TypeError(f"cannot narrow a {step.mode} step to {mode}")


def then(first: Step[In, Out], second: Step[Out, R]) -> Step[In, R]:
    """Compose two steps of any shape; the result has the wider of the two shapes."""
    mode: Mode = first.mode if _RANK[first.mode] >= _RANK[second.mode] else second.mode
    name = f"{first.name} >> {second.name}"

    if mode == "sync":
        a, b = first, second
        return SyncStep(lambda value: b.invoke(a.invoke(value)), name=name)  # type: ignore[attr-defined]

    if mode == "async":
        a, b = _widen(first, "async"), _widen(second, "async")

        async def chained(value: In, env: Env) -> R:
            middle = await a.run(value, env)  # type: ignore[attr-defined]
            return await b.run(middle, env)  # type: ignore[attr-defined]

        return AsyncStep(chained, name=name)

    async def traced(value: In, env: Env) -> tuple[R, Logs]:
        middle, first_logs = await first._traced(value, env)
        out, second_logs = await second._traced(middle, env)
        return out, first_logs + second_logs

    return ContextualStep(traced, name=name)


def _monadic(step: Step[Any, Any]) -> Step[Any, Any]:
    """Lift `step` to accept a Result/Option and short-circuit on absence or failure."""

    def rewrap(container: Result[Any, Any] | Option[Any], out: Any) -> Any:
        if isinstance(out, (Result, Option)):
            return out
        return Result.Success(out) if isinstance(container, Result) else Option.Some(out)

    def payload(container: Result[Any, Any] | Option[Any]) -> Option[Any]:
        if isinstance(container, Result):
            return container.to_option()
        if isinstance(container, Option):
            return container
        raise TypeError(f"bind expects a Result or Option input, got {type(container).__name__}")

    name = f"bind({step.name})"

    if step.mode == "sync":
        def bound(container: Any) -> Any:
            return payload(container).match(
                lambda v: rewrap(container, step.invoke(v)),  # type: ignore[attr-defined]
                lambda: container,
            )

        return SyncStep(bound, name=name)

    if step.mode == "async":
        async def bound_async(container: Any, env: Env) -> Any:
            present = payload(container)
            if present.is_none:
                return container
            return rewrap(container, await step.run(present.get_or_default(None), env))  # type: ignore[attr-defined]

        return AsyncStep(bound_async, name=name)

    async def bound_traced(container: Any, env: Env) -> tuple[Any, Logs]:
        present = payload(container)
        if present.is_none:
            return container, ()
        out, logs = await step._traced(present.get_or_default(None), env)
        return rewrap(container, out), logs

    return ContextualStep(bound_traced, name=name)


def identity() -> SyncStep[Any, Any]:
    """The pass-through step; unit of `then`."""
    return SyncStep.identity()
