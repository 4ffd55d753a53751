"""Port protocols for pipewise - pure abstractions over collaborators."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from pipewise.memory.models import Episode


class EmbeddingPort(Protocol):
    """Text embedding provider. May raise on transport failure."""

    async def embed(self, text: str) -> list[float]: ...


class EpisodeStorePort(Protocol):
    """
    External vector store of episodes.
    Infrastructure-level.
    Not part of branch state.
    """

    endpoint: str
    collection: str

    async def put(self, episode: Episode) -> None:
        """Insert or replace an episode by id."""
        ...

    async def get(self, episode_id: str) -> Episode | None: ...

    async def query(self, vector: Sequence[float], top_k: int) -> list[tuple[str, float]]:
        """Return up to top_k `(episode_id, similarity)` pairs, best first."""
        ...

    async def delete(self, episode_id: str) -> bool: ...

    def scan(self) -> AsyncIterator[Episode]:
        """Iterate every stored episode."""
        ...


class DataStore(Protocol):
    """Document store owned by a branch."""

    def add(self, doc_id: str, document: Any) -> None: ...
    def get(self, doc_id: str) -> Any | None: ...
    def __len__(self) -> int: ...
