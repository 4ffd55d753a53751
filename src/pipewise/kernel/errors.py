"""Error taxonomy for pipeline execution."""

from __future__ import annotations

import asyncio
import reprlib
from dataclasses import dataclass, field
from typing import Any, Literal

ErrorKind = Literal["validation", "execution", "external", "cancelled"]

_snapshot = reprlib.Repr()
_snapshot.maxstring = 120
_snapshot.maxother = 120


def snapshot(value: Any) -> str:
    """Bounded repr of a step input for diagnostics."""
    return _snapshot.repr(value)


@dataclass(frozen=True)
class ErrorInfo:
    """
    Failure payload carried by Result.Failure inside pipelines.

    Kinds:
    - validation: malformed input to a step, recoverable by the caller
    - execution: an error raised inside step logic
    - external: an embedding provider or store was unreachable
    - cancelled: the run was cancelled on purpose
    """

    kind: ErrorKind
    message: str
    step: str | None = None
    input_snapshot: str | None = None
    cause: BaseException | None = field(default=None, compare=False, repr=False)

    @staticmethod
    def validation(message: str, step: str | None = None) -> ErrorInfo:
        return ErrorInfo(kind="validation", message=message, step=step)

    @staticmethod
    def external(message: str, cause: BaseException | None = None) -> ErrorInfo:
        return ErrorInfo(kind="external", message=message, cause=cause)

    @staticmethod
    def cancelled(step: str | None, reason: Any = None) -> ErrorInfo:
        message = f"cancelled at step '{step}'" if step else "cancelled"
        if reason is not None:
            message = f"{message}: {reason}"
        return ErrorInfo(kind="cancelled", message=message, step=step)

    def __str__(self) -> str:
        return self.message


class PipelineError(Exception):
    """Base class for errors raised by pipewise."""

    kind: ErrorKind = "execution"


class ValidationError(PipelineError, ValueError):
    """Malformed input, e.g. a missing template variable."""

    kind: ErrorKind = "validation"


class ExternalDependencyError(PipelineError):
    """An embedding provider or episode store could not be reached."""

    kind: ErrorKind = "external"


class MemoryDurabilityError(ExternalDependencyError):
    """Raised when memory writes are required to succeed and did not."""


class StepExecutionError(PipelineError):
    """An error raised inside a step body.

    Preserves the failing step's identity and a snapshot of its input so a
    fatal abort can be diagnosed. Composition re-raises it unchanged, so the
    innermost step is always the one reported.
    """

    def __init__(self, step: str, value: Any, cause: BaseException) -> None:
        self.step = step
        self.input_snapshot = snapshot(value)
        self.cause = cause
        self.kind = cause.kind if isinstance(cause, PipelineError) else "execution"
        super().__init__(f"step '{step}' failed on input {self.input_snapshot}: {cause}")

    @property
    def info(self) -> ErrorInfo:
        return ErrorInfo(
            kind=self.kind,
            message=str(self.cause),
            step=self.step,
            input_snapshot=self.input_snapshot,
            cause=self.cause,
        )

    def __repr__(self) -> str:
        return f"StepExecutionError(step={self.step!r}, cause={self.cause!r})"


class StepCancelled(asyncio.CancelledError):
    """A step abandoned its work because the run was cancelled.

    Subclasses asyncio.CancelledError so that `except Exception` boundaries
    (try_result, memory wrappers) never turn a planned cancellation into a
    generic failure.
    """

    def __init__(self, step: str, reason: Any = None) -> None:
        self.step = step
        self.reason = reason
        super().__init__(f"step '{step}' cancelled" + (f": {reason}" if reason is not None else ""))
