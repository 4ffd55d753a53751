import pytest

from pipewise.memory.engine import MemoryConfig
from pipewise.memory.models import Episode, Outcome
from pipewise.runtime import HashingEmbedding, InMemoryEpisodeStore, TrackedStore, cosine_similarity


def make_episode(episode_id: str, embedding: list[float]) -> Episode:
    return Episode(
        id=episode_id,
        goal=episode_id,
        branch_name="test",
        outcome=Outcome.successful("done"),
        embedding=embedding,
    )


def test_cosine_similarity_bounds() -> None:
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == 0.0
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0


def test_cosine_similarity_rejects_mismatched_dimensions() -> None:
    with pytest.raises(ValueError):
        cosine_similarity([1.0], [1.0, 0.0])


@pytest.mark.asyncio
async def test_hashing_embedding_is_deterministic_and_normalised() -> None:
    embedding = HashingEmbedding(dimensions=64)

    a = await embedding.embed("Implement authentication")
    b = await embedding.embed("implement   AUTHENTICATION")
    empty = await embedding.embed("")

    assert len(a) == 64
    assert a == b
    assert sum(x * x for x in a) == pytest.approx(1.0)
    assert sum(x * x for x in empty) == pytest.approx(1.0)
    assert cosine_similarity(a, b) == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_hashing_embedding_relates_shared_words() -> None:
    embedding = HashingEmbedding()
    base = await embedding.embed("deploy the service to production")
    related = await embedding.embed("deploy to production")
    unrelated = await embedding.embed("banana")

    assert cosine_similarity(base, related) > cosine_similarity(base, unrelated)


def test_hashing_embedding_rejects_bad_dimensions() -> None:
    with pytest.raises(ValueError):
        HashingEmbedding(dimensions=0)


@pytest.mark.asyncio
async def test_episode_store_ranks_by_similarity() -> None:
    store = InMemoryEpisodeStore()
    await store.put(make_episode("far", [0.0, 1.0]))
    await store.put(make_episode("near", [1.0, 0.1]))
    await store.put(make_episode("exact", [1.0, 0.0]))

    ranked = await store.query([1.0, 0.0], top_k=2)

    assert [episode_id for episode_id, _ in ranked] == ["exact", "near"]
    assert ranked[0][1] == pytest.approx(1.0)
    assert await store.query([1.0, 0.0], top_k=0) == []


@pytest.mark.asyncio
async def test_episode_store_put_is_upsert_and_delete() -> None:
    store = InMemoryEpisodeStore(endpoint="memory://test", collection="c")
    await store.put(make_episode("a", [1.0]))
    await store.put(make_episode("a", [1.0]).with_status("consolidated"))

    assert len(store) == 1
    assert (await store.get("a")).status == "consolidated"
    assert [episode.id async for episode in store.scan()] == ["a"]
    assert await store.delete("a") is True
    assert await store.delete("a") is False
    assert await store.get("a") is None


def test_tracked_store() -> None:
    store = TrackedStore("docs")
    store.add("a", 1)
    store.add("b", 2)

    assert len(store) == 2
    assert store.get("a") == 1
    assert store.get("z") is None
    assert store.snapshot() == (("a", 1), ("b", 2))


def test_memory_config_from_env(monkeypatch) -> None:
    monkeypatch.setenv("PIPEWISE_MEMORY_TOP_K", "3")
    monkeypatch.setenv("PIPEWISE_MEMORY_MIN_SIMILARITY", "0.5")
    monkeypatch.setenv("PIPEWISE_MEMORY_REQUIRE_DURABILITY", "yes")

    config = MemoryConfig.from_env()

    assert config.top_k == 3
    assert config.min_similarity == 0.5
    assert config.require_durability is True
    assert config.summary_chars == MemoryConfig().summary_chars


def test_memory_config_from_env_rejects_garbage(monkeypatch) -> None:
    monkeypatch.setenv("PIPEWISE_MEMORY_TOP_K", "many")

    with pytest.raises(ValueError, match="PIPEWISE_MEMORY_TOP_K"):
        MemoryConfig.from_env()
