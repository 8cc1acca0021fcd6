"""
Tests for the vector and matrix primitives.

Tests cover:
- Products: dot, matrix-vector, vector-matrix, matrix-matrix
- Transpose
- Element-wise arithmetic
- Shape preconditions (mismatches raise ValueError)
"""

import numpy as np
import pytest

from toy_llm.vector_ops import (
    dot_product,
    mat_mul,
    mat_vec_mul,
    transpose,
    vec_add,
    vec_mat_mul,
    vec_scale,
    vec_sub,
)


class TestProducts:
    def test_dot_product(self):
        assert dot_product([1.0, 2.0, 3.0], [4.0, 5.0, 6.0]) == 32.0

    def test_dot_product_length_mismatch(self):
        with pytest.raises(ValueError):
            dot_product([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_mat_vec_mul_uses_rows(self):
        matrix = np.array([[1.0, 0.0, 2.0], [0.0, 1.0, -1.0]])

        np.testing.assert_array_equal(mat_vec_mul(matrix, [1.0, 2.0, 3.0]), [7.0, -1.0])

    def test_vec_mat_mul_projects_vector(self):
        """(in,) @ (in, out) -> (out,), the way weight matrices are applied."""
        matrix = np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])

        np.testing.assert_array_equal(vec_mat_mul([1.0, 0.0, -1.0], matrix), [-4.0, -4.0])

    def test_vec_mat_mul_shape_mismatch(self):
        with pytest.raises(ValueError):
            vec_mat_mul([1.0, 2.0], np.ones((3, 2)))

    def test_mat_mul(self):
        a = np.array([[1.0, 2.0], [3.0, 4.0]])
        b = np.array([[0.0, 1.0, 2.0], [1.0, 0.0, 1.0]])

        np.testing.assert_array_equal(mat_mul(a, b), [[2.0, 1.0, 4.0], [4.0, 3.0, 10.0]])

    def test_mat_mul_inner_dimension_mismatch(self):
        """Mismatched inner dimensions are a precondition violation."""
        with pytest.raises(ValueError, match="Inner dimensions"):
            mat_mul(np.ones((2, 3)), np.ones((2, 3)))

    def test_mat_mul_rejects_vectors(self):
        with pytest.raises(ValueError):
            mat_mul(np.ones(3), np.ones((3, 1)))


class TestTranspose:
    def test_transpose_swaps_axes(self):
        matrix = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])

        np.testing.assert_array_equal(transpose(matrix), [[1.0, 4.0], [2.0, 5.0], [3.0, 6.0]])

    def test_transpose_returns_new_array(self):
        matrix = np.zeros((2, 2))
        result = transpose(matrix)
        result[0, 1] = 9.0

        assert matrix[1, 0] == 0.0


class TestElementwise:
    def test_vec_add_and_sub(self):
        np.testing.assert_array_equal(vec_add([1.0, 2.0], [3.0, 5.0]), [4.0, 7.0])
        np.testing.assert_array_equal(vec_sub([1.0, 2.0], [3.0, 5.0]), [-2.0, -3.0])

    def test_vec_scale(self):
        np.testing.assert_array_equal(vec_scale([1.0, -2.0], 0.5), [0.5, -1.0])

    @pytest.mark.parametrize("operation", [vec_add, vec_sub])
    def test_length_mismatch(self, operation):
        with pytest.raises(ValueError, match="lengths differ"):
            operation([1.0, 2.0, 3.0], [1.0, 2.0])
