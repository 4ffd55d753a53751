"""Pipeline construction - fluent builder and text DSL."""

from pipewise.pipeline.builder import Pipeline
from pipewise.pipeline.dsl import (
    StepDefinition,
    StepRegistry,
    build,
    default_registry,
    explain,
    parse_token,
    tokenize,
)

__all__ = [
    "Pipeline",
    # DSL
    "tokenize",
    "parse_token",
    "build",
    "explain",
    "StepRegistry",
    "StepDefinition",
    "default_registry",
]
