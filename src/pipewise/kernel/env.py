"""Execution environment threaded through every step run."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, TypeVar

from pipewise.kernel.errors import StepCancelled

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation signal shared by the steps of one run.

    Async leaf steps race their work against the token; composition checks it
    before starting each step, so cancelling mid-chain stops later steps from
    ever beginning.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Any | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: Any = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self, step: str) -> None:
        if self._event.is_set():
            raise StepCancelled(step, self.reason)

    async def guard(self, work: Awaitable[T], step: str) -> T:
        """Await `work` unless the token fires first.

        On cancellation the pending work is cancelled and StepCancelled is
        raised. Work that finished in the same tick wins.
        """
        task = asyncio.ensure_future(work)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        raise StepCancelled(step, self.reason)


@dataclass(frozen=True)
class Env:
    """Immutable execution environment.

    Attributes:
        context: Read-only shared context for contextual steps. Dict contexts
            are frozen into a read-only mapping.
        cancel: Optional cancellation signal for the run.

    Note: values flow through step inputs and outputs, not through Env.
    """

    context: Any = None
    cancel: CancellationToken | None = None

    def __post_init__(self) -> None:
        if isinstance(self.context, Mapping) and not isinstance(self.context, MappingProxyType):
            object.__setattr__(self, "context", MappingProxyType(dict(self.context)))

    def checkpoint(self, step: str) -> None:
        """Raise StepCancelled if the run has been cancelled."""
        if self.cancel is not None:
            self.cancel.raise_if_cancelled(step)


EMPTY_ENV = Env()
