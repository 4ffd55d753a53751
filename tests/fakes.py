from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from pipewise.kernel.branch import Branch, DataSource
from pipewise.memory.engine import EpisodicMemoryEngine, MemoryConfig
from pipewise.runtime.store import InMemoryEpisodeStore, TrackedStore

# Word -> concept axis. Every text also gets a constant bias component.
CONCEPTS: dict[str, str] = {
    "implement": "build",
    "authentication": "auth",
    "login": "auth",
    "user": "user",
    "registration": "user",
    "deploy": "ship",
    "production": "ship",
    "functionality": "feature",
}
AXES = ("bias", "build", "auth", "user", "ship", "feature")
BIAS = 2.0


@dataclass
class ConceptEmbedding:
    """Deterministic embedding over a handful of concept axes."""

    calls: list[str] = field(default_factory=list)

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        vector = dict.fromkeys(AXES, 0.0)
        vector["bias"] = BIAS
        for word in re.findall(r"[a-z]+", text.lower()):
            axis = CONCEPTS.get(word)
            if axis is not None:
                vector[axis] += 1.0
        norm = math.sqrt(sum(v * v for v in vector.values()))
        return [vector[axis] / norm for axis in AXES]


@dataclass
class FailingEmbedding:
    message: str = "embedding service unreachable"

    async def embed(self, text: str) -> list[float]:
        _ = text
        raise ConnectionError(self.message)


class FailingEpisodeStore(InMemoryEpisodeStore):
    """Reads work, writes fail. Optionally starts with `episodes` already stored."""

    def __init__(self, *episodes: Any, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._episodes.update((episode.id, episode) for episode in episodes)

    async def put(self, episode: Any) -> None:
        raise ConnectionError(f"{self.endpoint} refused the write")


@dataclass
class FakeClock:
    now: datetime = field(default_factory=lambda: datetime(2026, 1, 1, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def make_branch(name: str = "demo") -> Branch:
    return Branch(name=name, store=TrackedStore(name), data_source=DataSource("file:///tmp/demo"))


def make_engine(
    embedding: Any | None = None,
    store: InMemoryEpisodeStore | None = None,
    config: MemoryConfig | None = None,
    clock: FakeClock | None = None,
) -> EpisodicMemoryEngine:
    return EpisodicMemoryEngine(
        embedding or ConceptEmbedding(),
        store if store is not None else InMemoryEpisodeStore(),
        config or MemoryConfig(),
        clock or FakeClock(),
    )
