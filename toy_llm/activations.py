"""
Activation and Normalization Functions

This module implements the non-linear pieces of the toy transformer: the
softmax used for attention weights and output probabilities, the ReLU inside
the feed-forward network, the parameter-free layer normalization applied after
each residual connection, and the cross-entropy loss for a single prediction.

All implementations are in pure NumPy for educational purposes.

Functions:
    softmax: Converts scores to a probability distribution
    relu: Rectified Linear Unit
    layer_norm: Zero-mean, unit-variance rescaling (no learned scale/shift)
    cross_entropy_loss: Negative log-probability of the target token

Reference:
    - "Attention Is All You Need" (Vaswani et al., 2017)
    - "Layer Normalization" (Ba et al., 2016)
"""

import numpy as np

# Smallest probability fed to the logarithm in cross_entropy_loss
PROBABILITY_FLOOR = 1e-10

# Added to the variance in layer_norm before the square root
LAYER_NORM_EPSILON = 1e-5


def softmax(logits: np.ndarray, axis: int = -1) -> np.ndarray:
    """
    Compute softmax activation function.

    Converts a vector of arbitrary real values (logits) into a probability
    distribution where all values are non-negative and sum to 1.

    Mathematical Formula:
        softmax(x)_i = exp(x_i) / sum_j(exp(x_j))

    Numerical Stability:
        We subtract max(x) from all values before exponentiation to prevent
        overflow. This doesn't change the result because:
        exp(x_i - max) / sum(exp(x_j - max)) = exp(x_i) / sum(exp(x_j))

        It also makes softmax shift invariant in floating point: adding the
        same constant to every element gives the same distribution.

    Args:
        logits: Non-empty, finite input array. Softmax is applied along the
                specified axis.
        axis: The axis along which to compute softmax. Default is -1 (last axis),
              which is the row-wise softmax used for attention scores.

    Returns:
        probabilities: Array of same shape as input, with softmax applied along
                      the specified axis. Values along that axis sum to 1.

    Example:
        >>> probs = softmax(np.array([1.0, 2.0, 3.0]))
        >>> print(probs)  # [0.09, 0.24, 0.67]
    """
    logits = np.asarray(logits, dtype=np.float64)

    # Step 1: Subtract maximum for numerical stability
    max_logit = np.max(logits, axis=axis, keepdims=True)
    stable_logits = logits - max_logit

    # Step 2: Compute exponentials (all <= 1)
    exponentials = np.exp(stable_logits)

    # Step 3: Normalize to get probabilities
    sum_of_exponentials = np.sum(exponentials, axis=axis, keepdims=True)
    probabilities = exponentials / sum_of_exponentials

    return probabilities


def relu(x: np.ndarray) -> np.ndarray:
    """
    Compute ReLU (Rectified Linear Unit) activation.

    Mathematical Formula:
        ReLU(x) = max(0, x)

    Args:
        x: Input array of any shape.

    Returns:
        Output array of same shape with ReLU applied element-wise.

    Example:
        >>> relu(np.array([-2.0, -1.0, 0.0, 1.0, 2.0]))
        array([0., 0., 0., 1., 2.])
    """
    return np.maximum(0.0, np.asarray(x, dtype=np.float64))


def layer_norm(x: np.ndarray, epsilon: float = LAYER_NORM_EPSILON) -> np.ndarray:
    """
    Pure statistical layer normalization.

    Formula:
        y = (x - mean) / sqrt(var + eps)

    Unlike the usual LayerNorm layer there is no learnable gamma or beta:
    the output is only the standardized input. Mean and (population) variance
    are computed over the last axis, so a 2D input of shape
    (seq_len, embed_dim) is normalized position by position.

    The epsilon keeps the denominator away from zero: a constant input has
    zero variance and normalizes to all zeros instead of NaN.

    Args:
        x: Input of shape (..., features)
        epsilon: Added to the variance before the square root

    Returns:
        Normalized array of the same shape
    """
    x = np.asarray(x, dtype=np.float64)

    mean = np.mean(x, axis=-1, keepdims=True)
    variance = np.var(x, axis=-1, keepdims=True)
    std = np.sqrt(variance + epsilon)

    return (x - mean) / std


def cross_entropy_loss(probabilities: np.ndarray, target_index: int) -> float:
    """
    Cross-entropy loss for a single next-token prediction.

    Formula:
        loss = -log(max(p[target], 1e-10))

    The floor keeps the loss finite when the model assigns zero probability
    to the target (the largest possible loss is -log(1e-10) ~= 23.03).

    Args:
        probabilities: Probability distribution over the vocabulary
        target_index: Id of the correct token

    Returns:
        Scalar loss value (always >= 0 for a valid distribution)
    """
    probability = max(float(probabilities[target_index]), PROBABILITY_FLOOR)
    return float(-np.log(probability))
