import numpy as np
import pytest

from notemind.embeddings.types import EmbeddingProvider, EmbeddingVector, cosine_similarity

from conftest import FakeEmbedder


class TestEmbeddingVector:
    def test_from_list(self):
        vector = EmbeddingVector([1.0, 2.0, 2.0])
        assert vector.dimension == 3
        assert vector.norm == pytest.approx(3.0)
        assert vector.numpy.dtype == np.float32

    def test_values_are_not_normalized(self):
        assert EmbeddingVector([3.0, 4.0]).list == [3.0, 4.0]

    def test_weaviate_format_is_float64_list(self):
        values = EmbeddingVector([0.5, 0.25]).to_weaviate()
        assert values == [0.5, 0.25]
        assert all(isinstance(v, float) for v in values)

    @pytest.mark.parametrize("bad", [[], [[1.0, 2.0]], [1.0, float("nan")], [float("inf")]])
    def test_rejects_invalid_vectors(self, bad):
        with pytest.raises(ValueError):
            EmbeddingVector(bad)


class TestCosineSimilarity:
    def test_identical_direction(self):
        assert cosine_similarity([1.0, 2.0], [2.0, 4.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert EmbeddingVector([1.0, 0.0]).cosine_similarity([0.0, 1.0]) == pytest.approx(0.0)

    def test_zero_norm(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_dimension_mismatch(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0]) == 0.0


def test_fake_embedder_satisfies_protocol():
    assert isinstance(FakeEmbedder(), EmbeddingProvider)
