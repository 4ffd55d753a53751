"""Episodic memory - record past executions and recall them by goal similarity."""

from pipewise.memory.engine import EpisodicMemoryEngine, MemoryConfig
from pipewise.memory.models import (
    ConsolidationReport,
    ConsolidationStrategy,
    Episode,
    ExecutionContext,
    ExperiencePlan,
    Outcome,
    RetrievedEpisode,
)
from pipewise.memory.steps import (
    consolidate_memories_step,
    goal_from_branch,
    retrieve_episodes_step,
    wrap_with_memory,
)

__all__ = [
    "EpisodicMemoryEngine",
    "MemoryConfig",
    # Models
    "Episode",
    "Outcome",
    "ExecutionContext",
    "RetrievedEpisode",
    "ConsolidationStrategy",
    "ConsolidationReport",
    "ExperiencePlan",
    # Steps
    "wrap_with_memory",
    "goal_from_branch",
    "retrieve_episodes_step",
    "consolidate_memories_step",
]
