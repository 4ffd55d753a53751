"""Runtime layer - default in-process collaborators."""

from pipewise.runtime.embedding import HashingEmbedding, cosine_similarity
from pipewise.runtime.store import InMemoryEpisodeStore, TrackedStore

__all__ = [
    "HashingEmbedding",
    "cosine_similarity",
    "InMemoryEpisodeStore",
    "TrackedStore",
]
