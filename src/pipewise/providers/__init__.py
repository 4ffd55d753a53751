"""Provider-specific implementations for pipewise."""

from .litellm import LiteLLMEmbedding

__all__ = [
    "LiteLLMEmbedding",
]
