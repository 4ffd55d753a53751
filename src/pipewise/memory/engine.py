"""Episodic memory engine - store, retrieve and consolidate past executions."""

from __future__ import annotations

import logging
import os
import statistics
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from pipewise.kernel.branch import Branch
from pipewise.kernel.errors import ErrorInfo
from pipewise.kernel.ports import EmbeddingPort, EpisodeStorePort
from pipewise.kernel.result import Result
from pipewise.memory.models import (
    ConsolidationReport,
    ConsolidationStrategy,
    Episode,
    ExecutionContext,
    ExperiencePlan,
    Outcome,
    RetrievedEpisode,
)
from pipewise.runtime.embedding import HashingEmbedding
from pipewise.runtime.store import InMemoryEpisodeStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemoryConfig:
    """Configuration for the episodic memory engine.

    Attributes:
        top_k: Episodes recalled by default.
        min_similarity: Default retrieval threshold in [0, 1].
        candidate_multiplier: Over-fetch factor from the store, so dissolved
            or vanished episodes do not starve a top_k query.
        require_durability: Memory failures abort the wrapped step instead of
            being logged and ignored.
        summary_chars: Maximum length of the output summary stored with an
            episode.
    """

    top_k: int = 5
    min_similarity: float = 0.7
    candidate_multiplier: int = 4
    require_durability: bool = False
    summary_chars: int = 200

    @staticmethod
    def from_env(prefix: str = "PIPEWISE_MEMORY_") -> MemoryConfig:
        """Build a config from environment variables, e.g. PIPEWISE_MEMORY_TOP_K."""
        defaults = MemoryConfig()

        def read(name: str, cast: Callable[[str], Any], default: Any) -> Any:
            raw = os.getenv(prefix + name)
            if raw is None or raw.strip() == "":
                return default
            try:
                return cast(raw.strip())
            except ValueError as exc:
                raise ValueError(f"invalid value for {prefix + name}: {raw!r}") from exc

        return MemoryConfig(
            top_k=read("TOP_K", int, defaults.top_k),
            min_similarity=read("MIN_SIMILARITY", float, defaults.min_similarity),
            candidate_multiplier=read("CANDIDATE_MULTIPLIER", int, defaults.candidate_multiplier),
            require_durability=read("REQUIRE_DURABILITY", _flag, defaults.require_durability),
            summary_chars=read("SUMMARY_CHARS", int, defaults.summary_chars),
        )


def _flag(raw: str) -> bool:
    value = raw.lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(raw)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EpisodicMemoryEngine:
    """
    Records executions as episodes and recalls them by goal similarity.

    Collaborators are injected: an embedding provider and an episode store.
    External failures of either are returned as Failure(kind="external");
    nothing raised by a collaborator escapes these methods.
    """

    def __init__(
        self,
        embedding: EmbeddingPort,
        store: EpisodeStorePort,
        config: MemoryConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.embedding = embedding
        self.store = store
        self.config = config or MemoryConfig()
        self._clock = clock

    @staticmethod
    def local(config: MemoryConfig | None = None, dimensions: int = 256) -> EpisodicMemoryEngine:
        """An engine over the in-process hashing embedding and episode store."""
        return EpisodicMemoryEngine(HashingEmbedding(dimensions), InMemoryEpisodeStore(), config)

    async def store_episode(
        self,
        branch: Branch,
        context: ExecutionContext,
        outcome: Outcome,
        metadata: Mapping[str, Any] | None = None,
    ) -> Result[str, ErrorInfo]:
        """Embed the goal and persist a new episode.

        Returns:
            Success(episode_id) with a fresh id per call, or a Failure
        """
        if not context.goal.strip():
            return Result.Failure(ErrorInfo.validation("episode goal must not be empty", step="store_episode"))

        try:
            vector = await self.embedding.embed(context.goal)
        except Exception as exc:
            return Result.Failure(ErrorInfo.external(f"embedding failed: {exc}", exc))

        episode = Episode(
            id=uuid.uuid4().hex,
            goal=context.goal,
            branch_name=branch.name,
            outcome=outcome,
            embedding=list(vector),
            metadata={**context.metadata, **(metadata or {})},
            event_count=len(branch.events),
            created_at=self._clock(),
        )
        try:
            await self.store.put(episode)
        except Exception as exc:
            return Result.Failure(
                ErrorInfo.external(f"episode store {self.store.endpoint}/{self.store.collection} unreachable: {exc}", exc)
            )

        logger.debug("stored episode %s for goal %r", episode.id, episode.goal)
        return Result.Success(episode.id)

    async def retrieve_similar_episodes(
        self,
        query: str,
        top_k: int | None = None,
        min_similarity: float | None = None,
    ) -> Result[list[RetrievedEpisode], ErrorInfo]:
        """Rank stored episodes by similarity to `query`.

        Returns at most top_k episodes with similarity >= min_similarity,
        best first. No match is Success([]), not a failure.
        """
        top_k = self.config.top_k if top_k is None else top_k
        min_similarity = self.config.min_similarity if min_similarity is None else min_similarity

        if not 0.0 <= min_similarity <= 1.0:
            return Result.Failure(ErrorInfo.validation(f"min_similarity must be within [0, 1], got {min_similarity}"))
        if top_k <= 0 or not query.strip():
            return Result.Success([])

        try:
            vector = await self.embedding.embed(query)
            candidates = await self.store.query(vector, top_k * max(1, self.config.candidate_multiplier))
            found: list[RetrievedEpisode] = []
            for episode_id, score in candidates:
                similarity = min(1.0, max(0.0, float(score)))
                if similarity < min_similarity:
                    continue
                episode = await self.store.get(episode_id)
                if episode is None or episode.status == "dissolved":
                    continue
                found.append(RetrievedEpisode(episode=episode, similarity=similarity))
        except Exception as exc:
            return Result.Failure(ErrorInfo.external(f"episode retrieval failed: {exc}", exc))

        found.sort(key=lambda item: item.similarity, reverse=True)
        logger.debug("recalled %d episode(s) for %r", len(found[:top_k]), query)
        return Result.Success(found[:top_k])

    async def consolidate_memories(
        self,
        older_than: timedelta,
        strategy: ConsolidationStrategy = ConsolidationStrategy.PRUNE,
    ) -> Result[ConsolidationReport, ErrorInfo]:
        """Apply `strategy` to episodes older than `older_than`.

        Episodes that have not aged past the threshold are never touched.
        The median success score is taken over aged, non-dissolved episodes.
        """
        if older_than < timedelta(0):
            return Result.Failure(ErrorInfo.validation("older_than must not be negative", step="consolidate_memories"))

        now = self._clock()
        try:
            aged = [
                episode
                async for episode in self.store.scan()
                if episode.status != "dissolved" and episode.age(now) > older_than
            ]
            if not aged:
                return Result.Success(ConsolidationReport(strategy=strategy))

            median = statistics.median(episode.success_score for episode in aged)
            below = [episode for episode in aged if episode.success_score < median]

            pruned: list[str] = []
            consolidated: list[str] = []
            dissolved: list[str] = []

            if strategy is ConsolidationStrategy.PRUNE:
                for episode in below:
                    if await self.store.delete(episode.id):
                        pruned.append(episode.id)
            elif strategy is ConsolidationStrategy.DISSOLVE:
                for episode in below:
                    await self.store.put(episode.with_status("dissolved"))
                    dissolved.append(episode.id)
            else:
                for episode in aged:
                    if episode.status == "active":
                        await self.store.put(episode.with_status("consolidated"))
                        consolidated.append(episode.id)
        except Exception as exc:
            return Result.Failure(ErrorInfo.external(f"consolidation failed: {exc}", exc))

        logger.debug(
            "consolidation %s examined %d, pruned %d, consolidated %d, dissolved %d",
            strategy.value,
            len(aged),
            len(pruned),
            len(consolidated),
            len(dissolved),
        )
        return Result.Success(
            ConsolidationReport(
                strategy=strategy,
                examined=len(aged),
                pruned=tuple(pruned),
                consolidated=tuple(consolidated),
                dissolved=tuple(dissolved),
                median_score=median,
            )
        )

    def plan_with_experience(
        self,
        goal: str,
        episodes: Sequence[RetrievedEpisode],
    ) -> Result[ExperiencePlan, ErrorInfo]:
        """Derive a plan from recalled episodes.

        Lessons of successful episodes become actions, errors of failed ones
        become cautions. Confidence is the similarity-weighted success score.
        """
        if not goal.strip():
            return Result.Failure(ErrorInfo.validation("plan goal must not be empty", step="plan_with_experience"))

        actions: list[str] = []
        cautions: list[str] = []
        for item in episodes:
            target = actions if item.episode.outcome.success else cautions
            for lesson in item.episode.lessons_learned:
                if lesson not in target:
                    target.append(lesson)

        weight = sum(item.similarity for item in episodes)
        confidence = sum(item.similarity * item.success_score for item in episodes) / weight if weight else 0.0

        if episodes:
            description = (
                f"Plan for '{goal}' informed by {len(episodes)} past episode(s): "
                f"{len(actions)} action(s), {len(cautions)} caution(s)."
            )
        else:
            description = f"Plan for '{goal}' with no prior experience."

        return Result.Success(
            ExperiencePlan(
                goal=goal,
                description=description,
                actions=tuple(actions),
                cautions=tuple(cautions),
                source_episode_ids=tuple(item.episode.id for item in episodes),
                confidence=confidence,
            )
        )
