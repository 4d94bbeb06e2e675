"""Deterministic hash-based image embedding.

Fallback image-embedding tier: always available and accepts any bytes,
including bytes no image library can decode.  The vector is a SHA-256
counter-mode expansion of the bytes mapped to [-1, 1] and L2-normalised,
so identical bytes give identical vectors and different bytes give
different ones.  It carries no visual similarity.
"""

from __future__ import annotations

import hashlib

import numpy as np

from src.interfaces.image_embedding_provider import IImageEmbeddingProvider


def hash_to_vector(data: bytes, dimension: int) -> list[float]:
    """Expand SHA-256 of *data* into an L2-normalised vector of *dimension*."""
    seed = hashlib.sha256(data).digest()
    stream = bytearray()
    counter = 0
    while len(stream) < dimension:
        stream.extend(hashlib.sha256(seed + counter.to_bytes(4, "big")).digest())
        counter += 1

    values = np.frombuffer(bytes(stream[:dimension]), dtype=np.uint8).astype(np.float64)
    values = values / 127.5 - 1.0
    norm = np.linalg.norm(values)
    if norm > 0:
        values = values / norm
    return values.tolist()


class HashImageEmbeddingProvider(IImageEmbeddingProvider):
    """Hash-expansion image embedder; the last tier, never refuses."""

    def __init__(self, dimension: int = 1024) -> None:
        self._dimension = dimension

    async def embed(self, image_bytes: bytes) -> list[float]:
        return hash_to_vector(image_bytes, self._dimension)

    def get_dimension(self) -> int:
        return self._dimension

    def is_available(self) -> bool:
        return True

    def can_process(self, image_bytes: bytes) -> bool:
        return True

    def get_provider_name(self) -> str:
        return "hash"
