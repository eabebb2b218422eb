"""Placeholder text embeddings.

There is no embedding model behind this yet: a 32-bit rolling hash of the
text seeds a sinusoidal pseudo-vector, which is then L2-normalized. Two
vectors are close when their hashes are close, not when their texts mean
the same thing. The output shape (EMBEDDING_DIM floats, unit norm) is the
contract; swap generate_embedding for a real model before turning on
semantic search.
"""

import logging
import math
from collections.abc import Callable

from mncodes.storage.models import EMBEDDING_DIM

logger = logging.getLogger(__name__)

Embedder = Callable[[str], list[float]]


def _text_hash(text: str) -> int:
    """Java-style string hash over UTF-16 code units, signed 32-bit."""
    h = 0
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def generate_embedding(text: str) -> list[float]:
    """Deterministic unit-length pseudo-embedding of ``text``."""
    h = _text_hash(text)
    raw = [math.sin(h * (i + 1)) * 0.5 for i in range(EMBEDDING_DIM)]
    magnitude = math.sqrt(sum(v * v for v in raw))
    if magnitude == 0.0:
        # hash of 0 (e.g. empty text) gives an all-zero vector
        return [1.0] + [0.0] * (EMBEDDING_DIM - 1)
    return [v / magnitude for v in raw]


def embed_texts(texts: list[str], embedder: Embedder = generate_embedding) -> list[list[float]]:
    """Embed a batch of texts with the given generator."""
    if not texts:
        return []
    vectors = [embedder(t) for t in texts]
    logger.debug("Embedded %d texts (%dd)", len(vectors), len(vectors[0]))
    return vectors
