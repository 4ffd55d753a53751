"""Prompt templates for reasoning steps.

Templates declare their variables upfront; rendering is pure and
deterministic. A missing or extra variable is a validation failure, the
one recoverable error kind a caller is expected to branch on.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pipewise.kernel.errors import ErrorInfo, ValidationError
from pipewise.kernel.result import Result
from pipewise.kernel.step import SyncStep

if TYPE_CHECKING:
    from pipewise.kernel.branch import Branch


@dataclass(frozen=True)
class RenderedPrompt:
    """Immutable rendered prompt artifact.

    - text: The fully rendered prompt string
    - template_name / template_version: Template the text came from
    - variables: The exact values passed to render()
    - hash: SHA256 hash of the rendered text
    """

    text: str
    template_name: str
    template_version: str
    variables: dict[str, Any] = field(default_factory=dict)
    hash: str = ""

    @staticmethod
    def literal(text: str, name: str = "literal") -> RenderedPrompt:
        """Wrap a plain string as a prompt with no variables."""
        return RenderedPrompt(
            text=text,
            template_name=name,
            template_version="0",
            hash=hashlib.sha256(text.encode()).hexdigest(),
        )


@dataclass(frozen=True)
class PromptTemplate:
    """Immutable prompt template with explicit variable declaration."""

    name: str
    version: str
    content: str
    variables: frozenset[str] = frozenset()

    def render(self, values: dict[str, Any]) -> RenderedPrompt:
        """Render the template with the given values.

        Raises:
            ValidationError: If there are missing or extra variables
        """
        provided = set(values.keys())
        missing = self.variables - provided
        extra = provided - self.variables

        if missing:
            raise ValidationError(f"Missing required variables for template '{self.name}': {sorted(missing)}")

        if extra:
            raise ValidationError(f"Extra variables provided for template '{self.name}': {sorted(extra)}")

        rendered_text = self.content.format(**values)
        return RenderedPrompt(
            text=rendered_text,
            template_name=self.name,
            template_version=self.version,
            variables=dict(values),
            hash=hashlib.sha256(rendered_text.encode()).hexdigest(),
        )

    def safe_render(self, values: dict[str, Any]) -> Result[RenderedPrompt, ErrorInfo]:
        try:
            return Result.Success(self.render(values))
        except ValidationError as exc:
            return Result.Failure(ErrorInfo.validation(str(exc), step=self.name))


def template_step(template: PromptTemplate) -> SyncStep[dict[str, Any], Result[RenderedPrompt, ErrorInfo]]:
    """A step rendering `template`; bad variables become a validation Failure."""
    return SyncStep(template.safe_render, name=f"prompt:{template.name}")


def record_prompt(branch: Branch, prompt: RenderedPrompt) -> Branch:
    """Append a `prompt_rendered` event to the branch.

    Recorded info: template name and version, the text hash and the variable
    keys (not values).
    """
    return branch.record(
        "prompt_rendered",
        template_name=prompt.template_name,
        template_version=prompt.template_version,
        hash=prompt.hash,
        variable_keys=tuple(prompt.variables.keys()),
    )
