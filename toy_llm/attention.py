"""
Causal Self-Attention

This module implements a single attention head: scaled dot-product attention
with a causal mask, so every position only mixes information from itself and
earlier positions.

The formula:
    Attention(Q, K, V) = softmax(mask(Q @ K^T / sqrt(d_k))) @ V

Where:
    Q = hidden @ W_q: "What am I looking for?"
    K = hidden @ W_k: "What do I contain?"
    V = hidden @ W_v: "What information do I provide?"
    d_k = head dimension (for scaling)

Reference: "Attention Is All You Need" (Vaswani et al., 2017) Section 3.2
           https://arxiv.org/abs/1706.03762

Functions:
    create_causal_mask: Lower-triangular boolean mask
    scaled_dot_product_attention: Masked attention over precomputed Q, K, V
    attention_head: Project a hidden sequence and attend with one head
"""

from typing import Tuple

import numpy as np

from toy_llm.activations import softmax
from toy_llm.weights import AttentionHeadWeights

# Score given to masked (future) positions before softmax
MASKED_SCORE = -1e9


def create_causal_mask(sequence_length: int) -> np.ndarray:
    """
    Create a causal (autoregressive) attention mask.

    Args:
        sequence_length: Length of the sequence

    Returns:
        mask: Boolean mask of shape (sequence_length, sequence_length)
              True where attention is allowed, False where masked

    Example:
        For sequence_length=3:
        [[True, False, False],   # Position 0 can only see position 0
         [True, True,  False],   # Position 1 can see 0, 1
         [True, True,  True]]    # Position 2 can see all
    """
    return np.tril(np.ones((sequence_length, sequence_length), dtype=bool))


def scaled_dot_product_attention(
    query: np.ndarray, key: np.ndarray, value: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute causal scaled dot-product attention for one head.

    Step-by-step:
        1. Raw scores: score(i, j) = Q_i . K_j / sqrt(d_k)
        2. Causal mask: score(i, j) = -1e9 for every j > i
        3. Row-wise softmax: each position gets a distribution over j <= i
        4. Output_i = sum_j weight(i, j) * V_j

    After the max-shift inside softmax, exp(-1e9 - max) underflows to exactly
    0.0, so masked weights are exactly zero rather than merely small.

    Args:
        query: Shape (seq_len, d_k)
        key: Shape (seq_len, d_k)
        value: Shape (seq_len, d_v)

    Returns:
        output: Shape (seq_len, d_v)
        attention_weights: Shape (seq_len, seq_len), rows sum to 1

    Cost: O(seq_len^2 * d_k).
    """
    sequence_length, d_k = query.shape

    scores = (query @ key.T) / np.sqrt(d_k)

    mask = create_causal_mask(sequence_length)
    masked_scores = np.where(mask, scores, MASKED_SCORE)

    attention_weights = softmax(masked_scores, axis=-1)
    output = attention_weights @ value

    return output, attention_weights


def attention_head(
    hidden: np.ndarray, head: AttentionHeadWeights
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Run one attention head over a hidden sequence.

    Args:
        hidden: Per-position hidden vectors, shape (seq_len, embed_dim)
        head: The head's Wq, Wk, Wv, each (embed_dim, head_dim)

    Returns:
        scores: Post-softmax attention weights, shape (seq_len, seq_len)
        output: Head output, shape (seq_len, head_dim)
    """
    query = hidden @ head.Wq
    key = hidden @ head.Wk
    value = hidden @ head.Wv

    output, scores = scaled_dot_product_attention(query, key, value)
    return scores, output


if __name__ == "__main__":
    print("=" * 70)
    print("CAUSAL ATTENTION DEMO")
    print("=" * 70)
    print()
    print("Each position builds a weighted average of the value vectors at")
    print("itself and every earlier position. Later positions are masked out.")
    print()

    rng = np.random.default_rng(0)
    words = ["the", "cat", "sat", "down"]
    embed_dim, head_dim = 4, 4

    # -------------------------------------------------------------------------
    # THE CAUSAL MASK
    # -------------------------------------------------------------------------
    print("-" * 70)
    print("1. THE CAUSAL MASK - Which positions may be attended to")
    print("-" * 70)
    print()
    mask = create_causal_mask(len(words))
    for word, row in zip(words, mask):
        print(f"  {word:>5}: " + " ".join("x" if allowed else "." for allowed in row))
    print()

    # -------------------------------------------------------------------------
    # ONE ATTENTION HEAD
    # -------------------------------------------------------------------------
    print("-" * 70)
    print("2. ONE ATTENTION HEAD - Post-softmax scores")
    print("-" * 70)
    print()
    head = AttentionHeadWeights(
        Wq=rng.uniform(-1, 1, (embed_dim, head_dim)),
        Wk=rng.uniform(-1, 1, (embed_dim, head_dim)),
        Wv=rng.uniform(-1, 1, (embed_dim, head_dim)),
    )
    hidden = rng.uniform(-0.5, 0.5, (len(words), embed_dim))
    scores, output = attention_head(hidden, head)

    print("         " + " ".join(f"{word:>6}" for word in words))
    for word, row in zip(words, scores):
        print(f"  {word:>5}: " + " ".join(f"{weight:6.3f}" for weight in row))
    print()
    print(f"Row sums: {np.round(scores.sum(axis=-1), 6)}")
    print(f"Head output shape: {output.shape}")
    print()
    print("=" * 70)
