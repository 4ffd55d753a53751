"""Episode data models."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

EpisodeStatus = Literal["active", "consolidated", "dissolved"]


class Outcome(BaseModel):
    """How one execution ended."""

    model_config = ConfigDict(frozen=True)

    success: bool
    summary: str = ""
    duration: timedelta = timedelta(0)
    errors: tuple[str, ...] = ()

    @staticmethod
    def successful(summary: str, duration: timedelta = timedelta(0)) -> Outcome:
        return Outcome(success=True, summary=summary, duration=duration)

    @staticmethod
    def failed(summary: str, duration: timedelta = timedelta(0), errors: list[str] | tuple[str, ...] = ()) -> Outcome:
        return Outcome(success=False, summary=summary, duration=duration, errors=tuple(errors))


class ExecutionContext(BaseModel):
    """What an execution was trying to achieve."""

    model_config = ConfigDict(frozen=True)

    goal: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @staticmethod
    def with_goal(goal: str, **metadata: Any) -> ExecutionContext:
        return ExecutionContext(goal=goal, metadata=metadata)


class Episode(BaseModel):
    """A stored record of one past execution.

    Immutable; a status change produces a copy via with_status().
    """

    model_config = ConfigDict(frozen=True)

    id: str
    goal: str
    branch_name: str
    outcome: Outcome
    embedding: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)
    event_count: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    status: EpisodeStatus = "active"

    @property
    def success_score(self) -> float:
        """Explicit `success_score` metadata, else 1.0 or 0.0 by outcome."""
        score = self.metadata.get("success_score")
        if isinstance(score, (int, float)) and not isinstance(score, bool):
            return float(score)
        return 1.0 if self.outcome.success else 0.0

    @property
    def lessons_learned(self) -> list[str]:
        lessons = [str(lesson) for lesson in self.metadata.get("lessons", ())]
        if self.outcome.success:
            summary = f": {self.outcome.summary}" if self.outcome.summary else ""
            lessons.append(f"'{self.goal}' succeeded{summary}")
        else:
            lessons.extend(f"Avoid: {error}" for error in self.outcome.errors)
        return lessons

    def with_status(self, status: EpisodeStatus) -> Episode:
        return self.model_copy(update={"status": status})

    def age(self, now: datetime) -> timedelta:
        return now - self.created_at


class RetrievedEpisode(BaseModel):
    """An episode paired with its similarity to the query."""

    model_config = ConfigDict(frozen=True)

    episode: Episode
    similarity: float

    @property
    def goal(self) -> str:
        return self.episode.goal

    @property
    def success_score(self) -> float:
        return self.episode.success_score


class ConsolidationStrategy(Enum):
    """
    Strategies for consolidating aged memories.

    - PRUNE: delete aged episodes scoring below the median
    - COMPRESS: mark every aged episode consolidated
    - DISSOLVE: mark aged episodes scoring below the median dissolved
    """

    PRUNE = "prune"
    COMPRESS = "compress"
    DISSOLVE = "dissolve"


class ConsolidationReport(BaseModel):
    """What one consolidation pass changed."""

    model_config = ConfigDict(frozen=True)

    strategy: ConsolidationStrategy
    examined: int = 0
    pruned: tuple[str, ...] = ()
    consolidated: tuple[str, ...] = ()
    dissolved: tuple[str, ...] = ()
    median_score: float | None = None

    @property
    def changed(self) -> int:
        return len(self.pruned) + len(self.consolidated) + len(self.dissolved)


class ExperiencePlan(BaseModel):
    """A plan informed by similar past episodes."""

    model_config = ConfigDict(frozen=True)

    goal: str
    description: str
    actions: tuple[str, ...] = ()
    cautions: tuple[str, ...] = ()
    source_episode_ids: tuple[str, ...] = ()
    confidence: float = 0.0
