"""Tests for the placeholder embedding generator."""

import math

import pytest

from mncodes.retrieval.embeddings import _text_hash, embed_texts, generate_embedding
from mncodes.storage.models import EMBEDDING_DIM


class TestTextHash:
    def test_empty_string_is_zero(self):
        assert _text_hash("") == 0

    def test_matches_rolling_hash(self):
        assert _text_hash("a") == 97
        assert _text_hash("ab") == 97 * 31 + 98

    def test_known_value(self):
        assert _text_hash("hello") == 99162322

    def test_wraps_to_signed_32_bit(self):
        h = _text_hash("deck railing height requirements for residential stairs")
        assert -(2 ** 31) <= h < 2 ** 31

    def test_astral_characters_hash_as_surrogate_pairs(self):
        assert _text_hash("\U0001F600") == 0xD83D * 31 + 0xDE00


class TestGenerateEmbedding:
    def test_dimension(self):
        assert len(generate_embedding("deck railing")) == EMBEDDING_DIM

    def test_deterministic(self):
        assert generate_embedding("deck railing") == generate_embedding("deck railing")

    def test_unit_norm(self):
        for text in ("deck", "egress window size", "Minneapolis amendments", "x"):
            vec = generate_embedding(text)
            assert math.sqrt(sum(v * v for v in vec)) == pytest.approx(1.0, abs=1e-6)

    def test_different_texts_differ(self):
        assert generate_embedding("deck") != generate_embedding("stairs")

    def test_empty_text_is_first_basis_vector(self):
        vec = generate_embedding("")
        assert vec[0] == 1.0
        assert all(v == 0.0 for v in vec[1:])


class TestEmbedTexts:
    def test_empty_batch(self):
        assert embed_texts([]) == []

    def test_default_embedder(self):
        assert embed_texts(["deck"]) == [generate_embedding("deck")]

    def test_batch_uses_embedder(self):
        vectors = embed_texts(["a", "b"], embedder=lambda t: [float(len(t))])
        assert vectors == [[1.0], [1.0]]
