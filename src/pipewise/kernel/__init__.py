"""Kernel layer - pure abstractions for pipewise."""

from pipewise.kernel.branch import Branch, DataSource, PipelineEvent
from pipewise.kernel.env import EMPTY_ENV, CancellationToken, Env
from pipewise.kernel.errors import (
    ErrorInfo,
    ExternalDependencyError,
    MemoryDurabilityError,
    PipelineError,
    StepCancelled,
    StepExecutionError,
    ValidationError,
)
from pipewise.kernel.ports import DataStore, EmbeddingPort, EpisodeStorePort
from pipewise.kernel.prompt import PromptTemplate, RenderedPrompt, record_prompt, template_step
from pipewise.kernel.result import Option, Result
from pipewise.kernel.step import AsyncStep, ContextualStep, Step, SyncStep, identity

__all__ = [
    "Result",
    "Option",
    # Steps
    "Step",
    "SyncStep",
    "AsyncStep",
    "ContextualStep",
    "identity",
    # Env
    "Env",
    "EMPTY_ENV",
    "CancellationToken",
    # Branch
    "Branch",
    "DataSource",
    "PipelineEvent",
    # Prompts
    "PromptTemplate",
    "RenderedPrompt",
    "record_prompt",
    "template_step",
    # Errors
    "ErrorInfo",
    "PipelineError",
    "ValidationError",
    "ExternalDependencyError",
    "MemoryDurabilityError",
    "StepExecutionError",
    "StepCancelled",
    # Ports
    "EmbeddingPort",
    "EpisodeStorePort",
    "DataStore",
]
