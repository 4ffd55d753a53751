"""Executable checks of the composition laws.

Each check runs both sides of a law on one input and reports whether the
observable outcomes agree: the output (and logs for contextual steps), or
the failing step and its message when an error is raised.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pipewise.kernel.env import EMPTY_ENV, Env
from pipewise.kernel.errors import StepExecutionError
from pipewise.kernel.result import Result
from pipewise.kernel.step import Step, identity

Outcome = tuple[str, Any]


async def observe(step: Step[Any, Any], value: Any, env: Env = EMPTY_ENV) -> Outcome:
    """Run `step` and capture what a caller can see of the run."""
    try:
        out, logs = await step._traced(value, env)
    except StepExecutionError as exc:
        return ("failure", (exc.step, str(exc.cause)))
    return ("success", (out, logs))


async def associativity_holds(
    a: Step[Any, Any],
    b: Step[Any, Any],
    c: Step[Any, Any],
    value: Any,
    env: Env = EMPTY_ENV,
) -> bool:
    """(a then b) then c behaves as a then (b then c)."""
    left = await observe(a.then(b).then(c), value, env)
    right = await observe(a.then(b.then(c)), value, env)
    return left == right


async def identity_holds(step: Step[Any, Any], value: Any, env: Env = EMPTY_ENV) -> bool:
    """identity then step, step, and step then identity all behave alike."""
    plain = await observe(step, value, env)
    left = await observe(identity().then(step), value, env)
    right = await observe(step.then(identity()), value, env)
    return left == plain == right


async def bind_associativity_holds(
    a: Step[Any, Any],
    f: Step[Any, Any],
    g: Step[Any, Any],
    value: Any,
    env: Env = EMPTY_ENV,
) -> bool:
    """a.bind(f).bind(g) behaves as a.bind(f.bind(g))."""
    left = await observe(a.bind(f).bind(g), value, env)
    right = await observe(a.bind(f.bind(g)), value, env)
    return left == right


def result_bind_associativity_holds(
    r: Result[Any, Any],
    f: Callable[[Any], Result[Any, Any]],
    g: Callable[[Any], Result[Any, Any]],
) -> bool:
    """r.bind(f).bind(g) == r.bind(lambda x: f(x).bind(g))."""
    return r.bind(f).bind(g) == r.bind(lambda x: f(x).bind(g))
