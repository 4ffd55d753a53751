from .combinators import compose, then
from .kernel import (
    AsyncStep,
    Branch,
    CancellationToken,
    ContextualStep,
    DataSource,
    Env,
    ErrorInfo,
    Option,
    PipelineEvent,
    Result,
    Step,
    StepCancelled,
    StepExecutionError,
    SyncStep,
    identity,
)
from .memory import (
    ConsolidationStrategy,
    EpisodicMemoryEngine,
    ExecutionContext,
    MemoryConfig,
    Outcome,
    wrap_with_memory,
)
from .pipeline import Pipeline
from .runtime import HashingEmbedding, InMemoryEpisodeStore, TrackedStore

__all__ = [
    # Core
    "Result",
    "Option",
    "ErrorInfo",
    "StepExecutionError",
    "StepCancelled",
    # Steps
    "Step",
    "SyncStep",
    "AsyncStep",
    "ContextualStep",
    "identity",
    "then",
    "compose",
    "Env",
    "CancellationToken",
    # Branch
    "Branch",
    "DataSource",
    "PipelineEvent",
    "TrackedStore",
    # Memory
    "EpisodicMemoryEngine",
    "MemoryConfig",
    "ExecutionContext",
    "Outcome",
    "ConsolidationStrategy",
    "wrap_with_memory",
    "HashingEmbedding",
    "InMemoryEpisodeStore",
    # Pipeline
    "Pipeline",
]
