import asyncio
from types import SimpleNamespace

import litellm
import pytest

from pipewise.kernel.errors import ExternalDependencyError
from pipewise.memory import ExecutionContext, Outcome
from pipewise.providers import LiteLLMEmbedding
from fakes import make_branch, make_engine


class TestLiteLLMEmbedding:
    """Test the LiteLLM embedding provider with a patched transport."""

    def test_embed_reads_dict_items(self, monkeypatch):
        calls = []

        async def fake_aembedding(**kwargs):
            calls.append(kwargs)
            return SimpleNamespace(data=[{"embedding": [0.1, 0.2, 0.3]}])

        monkeypatch.setattr(litellm, "aembedding", fake_aembedding)
        embedding = LiteLLMEmbedding("ollama/nomic-embed-text", api_base="http://localhost:11434")

        vector = asyncio.run(embedding.embed("Implement authentication"))

        assert vector == [0.1, 0.2, 0.3]
        assert calls == [
            {
                "model": "ollama/nomic-embed-text",
                "input": ["Implement authentication"],
                "api_base": "http://localhost:11434",
            }
        ]

    def test_embed_reads_object_items(self, monkeypatch):
        async def fake_aembedding(**kwargs):
            return SimpleNamespace(data=[SimpleNamespace(embedding=[1, 0])])

        monkeypatch.setattr(litellm, "aembedding", fake_aembedding)

        assert asyncio.run(LiteLLMEmbedding().embed("x")) == [1.0, 0.0]

    def test_transport_failure_is_external(self, monkeypatch):
        async def fake_aembedding(**kwargs):
            raise ConnectionError("connection refused")

        monkeypatch.setattr(litellm, "aembedding", fake_aembedding)

        with pytest.raises(ExternalDependencyError, match="connection refused"):
            asyncio.run(LiteLLMEmbedding("openai/text-embedding-3-small").embed("x"))

    @pytest.mark.asyncio
    async def test_engine_reports_provider_failure(self, monkeypatch):
        async def fake_aembedding(**kwargs):
            raise TimeoutError("provider timed out")

        monkeypatch.setattr(litellm, "aembedding", fake_aembedding)
        engine = make_engine(embedding=LiteLLMEmbedding())

        result = await engine.store_episode(make_branch(), ExecutionContext.with_goal("x"), Outcome.successful("ok"))

        error = result.match(lambda _: None, lambda e: e)
        assert error.kind == "external"
        assert "provider timed out" in error.message
