"""Combinators - step composition primitives and their laws."""

from pipewise.combinators.laws import (
    associativity_holds,
    bind_associativity_holds,
    identity_holds,
    result_bind_associativity_holds,
)
from pipewise.combinators.ops import bind, compose, map_step, then, to_async, try_option, try_result
from pipewise.kernel.step import identity

__all__ = [
    "then",
    "compose",
    "bind",
    "map_step",
    "to_async",
    "try_result",
    "try_option",
    "identity",
    # Laws
    "associativity_holds",
    "identity_holds",
    "bind_associativity_holds",
    "result_bind_associativity_holds",
]
