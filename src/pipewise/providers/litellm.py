"""LiteLLM-backed embedding provider."""

from __future__ import annotations

from typing import Any

from pipewise.kernel.errors import ExternalDependencyError


class LiteLLMEmbedding:
    """Embedding port over any model LiteLLM can route to.

    Credentials and endpoints come from the environment variables LiteLLM
    reads for the chosen provider, e.g. "openai/text-embedding-3-small" or
    "ollama/nomic-embed-text".
    """

    def __init__(self, model: str = "openai/text-embedding-3-small", **options: Any) -> None:
        self.model = model
        self.options = options

    async def embed(self, text: str) -> list[float]:
        from litellm import aembedding

        try:
            response = await aembedding(model=self.model, input=[text], **self.options)
        except Exception as exc:
            raise ExternalDependencyError(f"embedding model {self.model} failed: {exc}") from exc

        item = response.data[0]
        vector = item["embedding"] if isinstance(item, dict) else item.embedding
        return [float(x) for x in vector]
