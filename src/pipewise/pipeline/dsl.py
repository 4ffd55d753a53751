"""Text DSL for pipelines: `Goal('ship auth') | Set('draft it') | Tag(v1)`.

Tokens are separated by top-level `|`. A pipe inside parentheses or quotes
belongs to the token. Each token names a registered step factory and may
carry one raw argument in parentheses.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pipewise.combinators.ops import compose
from pipewise.kernel.branch import Branch
from pipewise.kernel.result import Option
from pipewise.kernel.step import Step, SyncStep, identity

logger = logging.getLogger(__name__)

StepFactory = Callable[[str | None], Step[Any, Any]]


def tokenize(dsl: str | None) -> list[str]:
    """Split a DSL string on top-level pipes, dropping empty tokens."""
    if not dsl or not dsl.strip():
        return []

    tokens: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None

    for char in dsl:
        if quote is not None:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth = max(0, depth - 1)
        elif char == "|" and depth == 0:
            tokens.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    tokens.append("".join(current).strip())
    return [token for token in tokens if token]


def parse_token(token: str) -> tuple[str, str | None]:
    """Split `Name(args)` into the name and its raw argument.

    A single pair of surrounding quotes is removed from the argument.
    """
    token = token.strip()
    open_at = token.find("(")
    if open_at == -1 or not token.endswith(")"):
        return token, None

    name = token[:open_at].strip()
    args = token[open_at + 1 : -1].strip()
    if len(args) >= 2 and args[0] == args[-1] and args[0] in ("'", '"'):
        args = args[1:-1]
    return name, args


@dataclass(frozen=True)
class StepDefinition:
    """A named step factory available to the DSL."""

    name: str
    factory: StepFactory
    description: str = ""
    group: str = "general"

    @property
    def method(self) -> str:
        return getattr(self.factory, "__name__", self.name)


class StepRegistry:
    """Registry for looking up DSL step factories by token name.

    Lookup is case-insensitive.
    """

    def __init__(self) -> None:
        self._definitions: dict[str, StepDefinition] = {}

    def register(
        self,
        name: str,
        factory: StepFactory,
        description: str = "",
        group: str = "general",
    ) -> None:
        """Register a factory; re-registering a name replaces it."""
        self._definitions[name.lower()] = StepDefinition(name, factory, description, group)

    def get(self, name: str) -> Option[StepDefinition]:
        return Option.from_nullable(self._definitions.get(name.lower()))

    def groups(self) -> dict[str, list[str]]:
        grouped: dict[str, list[str]] = {}
        for definition in self._definitions.values():
            grouped.setdefault(definition.group, []).append(definition.name)
        return {group: sorted(names) for group, names in sorted(grouped.items())}

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)


def set_prompt(args: str | None) -> Step[Branch, Branch]:
    text = args or ""
    return SyncStep(lambda branch: branch.record("prompt_set", text=text), name="set_prompt")


def set_goal(args: str | None) -> Step[Branch, Branch]:
    goal = args or ""
    return SyncStep(lambda branch: branch.record("goal", goal=goal), name="set_goal")


def tag_branch(args: str | None) -> Step[Branch, Branch]:
    label = args or ""
    return SyncStep(lambda branch: branch.record("tag", label=label), name="tag_branch")


def default_registry() -> StepRegistry:
    """Create a registry with the built-in branch tokens."""
    registry = StepRegistry()
    registry.register("Set", set_prompt, "Record the working prompt text", group="branch")
    registry.register("Goal", set_goal, "Record the goal used for memory recall", group="branch")
    registry.register("Tag", tag_branch, "Attach a label to the branch", group="branch")
    return registry


def build(dsl: str | None, registry: StepRegistry | None = None) -> Step[Any, Any]:
    """Compose the steps named by `dsl`.

    Unknown tokens become no-ops and are logged; an empty DSL is identity.
    """
    registry = registry or default_registry()

    def no_op(token: str) -> Step[Any, Any]:
        logger.warning("unknown pipeline token %r treated as no-op", token)
        return identity()

    steps: list[Step[Any, Any]] = []
    for token in tokenize(dsl):
        name, args = parse_token(token)
        steps.append(registry.get(name).match(lambda definition: definition.factory(args), lambda: no_op(token)))
    return compose(*steps)


def explain(dsl: str | None, registry: StepRegistry | None = None) -> str:
    """Describe how each token of `dsl` resolves, and list the available tokens."""
    registry = registry or default_registry()
    lines = ["Pipeline tokens:"]

    tokens = tokenize(dsl)
    if not tokens:
        lines.append("  (none)")
    for token in tokens:
        name, args = parse_token(token)
        resolved = registry.get(name).match(
            lambda definition: f"{definition.name} -> {definition.method}",
            lambda: "(no-op)",
        )
        suffix = f" args={args!r}" if args is not None else ""
        lines.append(f"  {token}: {resolved}{suffix}")

    lines.append("")
    lines.append("Available token groups:")
    for group, names in registry.groups().items():
        lines.append(f"  {group}: {', '.join(names)}")
    return "\n".join(lines)
