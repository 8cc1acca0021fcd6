"""
Vector and Matrix Primitives

Thin, shape-checked wrappers around NumPy linear algebra. The engine itself
works on whole arrays, but these helpers give every primitive a single
definition with an explicit precondition: mismatched shapes are programming
errors and raise ValueError instead of broadcasting silently.

Functions:
    dot_product: Inner product of two vectors
    mat_vec_mul: matrix @ vector (one dot product per matrix row)
    vec_mat_mul: vector @ matrix (projects a vector through a weight matrix)
    mat_mul: matrix @ matrix
    transpose: Swap rows and columns
    vec_add, vec_sub, vec_scale: Element-wise arithmetic
"""

import numpy as np


def _as_vector(values) -> np.ndarray:
    vector = np.asarray(values, dtype=np.float64)
    if vector.ndim != 1:
        raise ValueError(f"Expected a vector, got array with shape {vector.shape}")
    return vector


def _as_matrix(values) -> np.ndarray:
    matrix = np.asarray(values, dtype=np.float64)
    if matrix.ndim != 2:
        raise ValueError(f"Expected a matrix, got array with shape {matrix.shape}")
    return matrix


def _check_same_length(a: np.ndarray, b: np.ndarray) -> None:
    if a.shape[0] != b.shape[0]:
        raise ValueError(f"Vector lengths differ: {a.shape[0]} != {b.shape[0]}")


def dot_product(a, b) -> float:
    """Return sum_i a_i * b_i for two vectors of equal length."""
    a = _as_vector(a)
    b = _as_vector(b)
    _check_same_length(a, b)
    return float(np.dot(a, b))


def mat_vec_mul(matrix, vector) -> np.ndarray:
    """
    Multiply a matrix by a column vector.

    Args:
        matrix: Shape (rows, cols)
        vector: Shape (cols,)

    Returns:
        Vector of shape (rows,) where entry r is dot(matrix[r], vector)
    """
    matrix = _as_matrix(matrix)
    vector = _as_vector(vector)
    if matrix.shape[1] != vector.shape[0]:
        raise ValueError(
            f"Cannot multiply matrix {matrix.shape} by vector of length {vector.shape[0]}"
        )
    return matrix @ vector


def vec_mat_mul(vector, matrix) -> np.ndarray:
    """
    Multiply a row vector by a matrix.

    This is how weight matrices stored as (in_features, out_features) project
    a hidden vector: (in,) @ (in, out) -> (out,).
    """
    vector = _as_vector(vector)
    matrix = _as_matrix(matrix)
    if vector.shape[0] != matrix.shape[0]:
        raise ValueError(
            f"Cannot multiply vector of length {vector.shape[0]} by matrix {matrix.shape}"
        )
    return vector @ matrix


def mat_mul(a, b) -> np.ndarray:
    """
    Matrix-matrix multiplication.

    Args:
        a: Shape (n, k)
        b: Shape (k, m)

    Returns:
        Product of shape (n, m)

    Raises:
        ValueError: If the inner dimensions do not match
    """
    a = _as_matrix(a)
    b = _as_matrix(b)
    if a.shape[1] != b.shape[0]:
        raise ValueError(f"Inner dimensions do not match: {a.shape} @ {b.shape}")
    return a @ b


def transpose(matrix) -> np.ndarray:
    """Return a new (cols, rows) matrix; the input is not modified."""
    return _as_matrix(matrix).T.copy()


def vec_add(a, b) -> np.ndarray:
    a = _as_vector(a)
    b = _as_vector(b)
    _check_same_length(a, b)
    return a + b


def vec_sub(a, b) -> np.ndarray:
    a = _as_vector(a)
    b = _as_vector(b)
    _check_same_length(a, b)
    return a - b


def vec_scale(a, scalar: float) -> np.ndarray:
    return _as_vector(a) * scalar
