"""Deterministic local embedding and vector similarity."""

from __future__ import annotations

import hashlib
import re
from collections.abc import Sequence

import numpy as np

_TOKEN = re.compile(r"[a-z0-9]+")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity clamped to [0, 1].

    Zero vectors have similarity 0.0 with everything.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"vector dimensions differ: {va.shape[0]} != {vb.shape[0]}")
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / norm, 0.0, 1.0))


class HashingEmbedding:
    """Signed feature hashing over lowercase word tokens.

    No model, no network: equal texts always get equal vectors and texts
    sharing words get positive similarity. Vectors are L2-normalised.
    """

    def __init__(self, dimensions: int = 256) -> None:
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")
        self.dimensions = dimensions

    def vector(self, text: str) -> np.ndarray:
        vec = np.zeros(self.dimensions, dtype=np.float64)
        for token in _TOKEN.findall(text.lower()):
            digest = hashlib.sha256(token.encode()).digest()
            index = int.from_bytes(digest[:8], "big") % self.dimensions
            vec[index] += 1.0 if digest[8] & 1 else -1.0
        norm = np.linalg.norm(vec)
        if norm == 0.0:
            vec[0] = 1.0
            return vec
        return vec / norm

    async def embed(self, text: str) -> list[float]:
        return self.vector(text).tolist()
