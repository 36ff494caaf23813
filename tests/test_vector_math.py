"""
Tests for cosine similarity and magnitude.
"""

import math

import numpy as np
import pytest

from eurotir.src.utils.vector_math import EPSILON, as_vector, cosine_similarity, is_finite_vector, magnitude


class TestMagnitude:

    def test_magnitude_of_3_4_is_5(self):
        assert magnitude([3.0, 4.0]) == pytest.approx(5.0)

    def test_magnitude_of_zero_vector(self):
        assert magnitude([0.0, 0.0, 0.0]) == 0.0


class TestCosineSimilarity:

    @pytest.mark.parametrize("vector", [[1.0, 2.0, 3.0], [-0.5, 0.25, 8.0], [0.01, 0.0], [42.0]])
    def test_self_similarity_is_one(self, vector):
        assert cosine_similarity(vector, vector, magnitude(vector)) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0], 1.0) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0], 1.0) == pytest.approx(-1.0)

    def test_missing_query_returns_exactly_minus_one(self):
        assert cosine_similarity(None, [1.0, 0.0], 1.0) == -1.0

    def test_missing_item_vector_returns_exactly_minus_one(self):
        assert cosine_similarity([1.0, 0.0], None, 0.0) == -1.0

    def test_dimension_mismatch_returns_exactly_minus_one(self):
        assert cosine_similarity([1.0, 0.0, 0.0], [1.0, 0.0], 1.0) == -1.0

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_component_returns_exactly_minus_one(self, bad):
        corrupt = [bad, 1.0]
        assert cosine_similarity([1.0, 0.0], corrupt, magnitude(corrupt)) == -1.0
        assert cosine_similarity(corrupt, [1.0, 0.0], 1.0) == -1.0

    def test_finite_vector_check(self):
        assert is_finite_vector([0.0, -2.5, 1e30])
        assert not is_finite_vector([1.0, float("nan")])
        assert not is_finite_vector(np.array([float("inf")]))

    def test_zero_vector_is_finite_near_zero(self):
        result = cosine_similarity([0.0, 0.0], [1.0, 0.0], 1.0)
        assert math.isfinite(result)
        assert result == pytest.approx(0.0)

    def test_epsilon_floor_applies(self):
        # Both magnitudes zero: denominator falls back to EPSILON, not 0
        assert cosine_similarity([0.0], [0.0], 0.0) == 0.0
        assert EPSILON == 1e-10

    def test_precomputed_query_magnitude_matches(self):
        q, v = [0.2, 0.4, 0.1], [0.3, 0.1, 0.9]
        assert cosine_similarity(q, v, magnitude(v), magnitude(q)) == pytest.approx(cosine_similarity(q, v, magnitude(v)))

    def test_accepts_numpy_arrays(self):
        q = np.array([1.0, 1.0])
        assert cosine_similarity(q, q, magnitude(q)) == pytest.approx(1.0)


class TestAsVector:

    def test_none_and_empty_are_absent(self):
        assert as_vector(None) is None
        assert as_vector([]) is None

    def test_converts_to_float_array(self):
        vec = as_vector([1, 2, 3])
        assert vec.dtype == np.float64
        assert vec.tolist() == [1.0, 2.0, 3.0]
