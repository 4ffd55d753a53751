"""In-memory stores: a branch's document store and a reference episode store."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    from pipewise.memory.models import Episode


class TrackedStore:
    """
    Document store owned by one branch.
    Mutable, insertion-ordered. Never shared between forks.
    """

    def __init__(self, name: str = "default") -> None:
        self.name = name
        self._documents: dict[str, Any] = {}

    def add(self, doc_id: str, document: Any) -> None:
        self._documents[doc_id] = document

    def get(self, doc_id: str) -> Any | None:
        return self._documents.get(doc_id)

    def snapshot(self) -> tuple[tuple[str, Any], ...]:
        """Get a snapshot of all documents."""
        return tuple(self._documents.items())

    def __len__(self) -> int:
        return len(self._documents)

    def __repr__(self) -> str:
        return f"TrackedStore(name={self.name!r}, documents={len(self._documents)})"


class InMemoryEpisodeStore:
    """
    Reference episode store ranking by cosine similarity.
    Access is serialised with an asyncio.Lock, as a remote store would do.
    """

    def __init__(self, endpoint: str = "memory://local", collection: str = "episodes") -> None:
        self.endpoint = endpoint
        self.collection = collection
        self._episodes: dict[str, Episode] = {}
        self._lock = asyncio.Lock()

    async def put(self, episode: Episode) -> None:
        async with self._lock:
            self._episodes[episode.id] = episode

    async def get(self, episode_id: str) -> Episode | None:
        async with self._lock:
            return self._episodes.get(episode_id)

    async def delete(self, episode_id: str) -> bool:
        async with self._lock:
            return self._episodes.pop(episode_id, None) is not None

    async def query(self, vector: Sequence[float], top_k: int) -> list[tuple[str, float]]:
        if top_k <= 0:
            return []
        async with self._lock:
            episodes = list(self._episodes.values())
        if not episodes:
            return []

        matrix = np.asarray([episode.embedding for episode in episodes], dtype=np.float64)
        query = np.asarray(vector, dtype=np.float64)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)
        scores = np.clip(scores, 0.0, 1.0)

        order = np.argsort(-scores, kind="stable")[:top_k]
        return [(episodes[i].id, float(scores[i])) for i in order]

    async def scan(self) -> AsyncIterator[Episode]:
        async with self._lock:
            episodes = list(self._episodes.values())
        for episode in episodes:
            yield episode

    def __len__(self) -> int:
        return len(self._episodes)
