#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Episodic memory example: store past executions, recall similar ones, plan
from experience and wrap a pipeline step with memory.

Uses the in-process hashing embedding. Set PIPEWISE_EMBEDDING_MODEL (for
example "ollama/nomic-embed-text") to embed through LiteLLM instead.
"""

import asyncio
import logging
import os
from datetime import timedelta

from pipewise import Branch, DataSource, ExecutionContext, Outcome, Pipeline, SyncStep, TrackedStore
from pipewise.memory import ConsolidationStrategy, EpisodicMemoryEngine, MemoryConfig, goal_from_branch
from pipewise.providers import LiteLLMEmbedding
from pipewise.runtime import InMemoryEpisodeStore


def make_engine() -> EpisodicMemoryEngine:
    config = MemoryConfig.from_env()
    model = os.getenv("PIPEWISE_EMBEDDING_MODEL")
    if model:
        return EpisodicMemoryEngine(LiteLLMEmbedding(model), InMemoryEpisodeStore(), config)
    return EpisodicMemoryEngine.local(config)


def make_branch(name: str = "demo") -> Branch:
    return Branch(name, TrackedStore(name), DataSource.from_path(os.getcwd()))


async def store_examples(memory: EpisodicMemoryEngine) -> None:
    """Store a few past executions."""
    done = Outcome.successful("Completed successfully", timedelta(minutes=5))
    failed = Outcome.failed("Deployment failed", timedelta(minutes=10), ["Configuration error", "Missing dependencies"])

    for goal, outcome, score in [
        ("Implement authentication", done, 0.95),
        ("Add user registration", done, 0.85),
        ("Deploy to production", failed, 0.3),
    ]:
        result = await memory.store_episode(
            make_branch(),
            ExecutionContext.with_goal(goal),
            outcome,
            {"example": True, "success_score": score},
        )
        print(result.match(lambda _: f"  stored: {goal} (score: {score:.2f})", lambda e: f"  failed to store: {e}"))


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    memory = make_engine()

    print("1. Storing episodes")
    await store_examples(memory)

    query = "How to implement login functionality"
    print(f"\n2. Recalling episodes for {query!r}")
    recalled = await memory.retrieve_similar_episodes(query, top_k=5, min_similarity=0.1)
    episodes = recalled.get_or_default([])
    for item in episodes:
        print(f"  {item.goal}: similarity {item.similarity:.2f}, score {item.success_score:.2f}")

    print("\n3. Planning from experience")
    plan = memory.plan_with_experience(query, episodes)
    print(plan.match(lambda p: p.description, lambda e: f"  planning failed: {e}"))

    print("\n4. Wrapping a pipeline with memory")
    pipeline = (
        Pipeline.from_branch(make_branch().record("goal", goal="Implement login"))
        .then(SyncStep(lambda branch: branch.record("note", text="processed"), name="process"))
        .with_memory(memory, goal_from_branch, top_k=3)
    )
    result = await pipeline.run()
    print(result.match(lambda b: f"  branch now has {len(b.events)} events", lambda e: f"  failed: {e}"))

    print("\n5. Consolidating memories")
    report = await memory.consolidate_memories(timedelta(hours=1), ConsolidationStrategy.PRUNE)
    print(report.match(lambda r: f"  examined {r.examined}, changed {r.changed}", lambda e: f"  failed: {e}"))


if __name__ == "__main__":
    asyncio.run(main())
