"""Combinator primitives: then, compose, map_step, to_async, try_result, try_option."""

# Combinators satisfy the following algebraic laws:
#
# 1. Identity: identity().then(step) == step == step.then(identity())
#    Composing with identity changes neither outputs nor failures
#
# 2. Associativity: (a.then(b)).then(c) == a.then(b.then(c))
#    Holds for outputs, logs and failure propagation
#
# 3. Kleisli associativity: a.bind(f).bind(g) == a.bind(f.bind(g))
#    Failure or Nothing short-circuits at the first step producing it
#
# 4. Widening: mode(a.then(b)) == max(mode(a), mode(b))
#    sync < async < contextual, composition never narrows


from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from pipewise.kernel.errors import ErrorInfo
from pipewise.kernel.result import Option, Result
from pipewise.kernel.step import AsyncStep, Step, identity
from pipewise.kernel.step import then as _then

In = TypeVar("In")
Out = TypeVar("Out")
R = TypeVar("R")


def then(first: Step[In, Out], second: Step[Out, R]) -> Step[In, R]:
    """Sequential composition.

    Semantics:
        - The output of `first` is the input of `second`
        - The result has the wider mode of the two
        - A failure raised in `first` means `second` never runs

    Args:
        first: Step to run first.
        second: Step receiving the output of `first`.

    Returns:
        Step[In, R]: The composed step.
    """
    return _then(first, second)


def compose(*steps: Step[Any, Any]) -> Step[Any, Any]:
    """Compose steps left to right. No steps yields identity()."""
    if not steps:
        return identity()
    composed = steps[0]
    for step in steps[1:]:
        composed = _then(composed, step)
    return composed


def map_step(step: Step[In, Out], fn: Callable[[Out], R]) -> Step[In, R]:
    """Post-process the output of `step` without changing its mode."""
    return step.map(fn)


def to_async(step: Step[In, Out]) -> AsyncStep[In, Out]:
    """Lift a sync step to async. Async steps are returned unchanged."""
    return step.to_async()


def try_result(step: Step[In, Out]) -> Step[In, Result[Out, ErrorInfo]]:
    """Convert errors raised by `step` into a Failure carrying ErrorInfo.

    Cancellation is never converted.
    """
    return step.try_result()


def try_option(step: Step[In, Out], predicate: Callable[[Out], bool] | None = None) -> Step[In, Option[Out]]:
    """Wrap the output of `step` in Option; values failing `predicate` become Nothing."""
    return step.try_option(predicate)


def bind(step: Step[In, Any], next_step: Step[Any, Any]) -> Step[In, Any]:
    """Kleisli composition over a Result or Option producing step."""
    return step.bind(next_step)
