"""
Transformer Layer

This module implements the repeating unit of the toy model. Each layer:
1. Runs every attention head on the same input
2. Averages the head outputs back to the embedding width
3. Adds the result to the input and normalizes (residual + LayerNorm)
4. Applies a position-wise feed-forward network
5. Adds and normalizes again

Architecture (Post-LN, as in the original Transformer):
    x -> [heads] -> combine -> + x -> LayerNorm -> h
    h -> FeedForward ---------> + h -> LayerNorm -> output

Head combination is deliberately simpler than the usual
concatenate-then-project: output dimension d of position i is the plain
average over heads of each head's value at dimension (d mod head_dim).
With one head of full width this is the identity; with several heads every
head's output is tiled across the embedding width and averaged.

Reference: "Attention Is All You Need" (Vaswani et al., 2017) Section 3.1, 3.3

Classes:
    LayerOutput: Everything one layer computed, for inspection

Functions:
    combine_heads: Wrap-indexed average of head outputs
    feed_forward: Linear -> ReLU -> Linear, per position
    transformer_layer: One full layer
"""

from dataclasses import dataclass
from typing import List

import numpy as np

from toy_llm.activations import layer_norm, relu
from toy_llm.attention import attention_head
from toy_llm.weights import FeedForwardWeights, TransformerLayerWeights


@dataclass
class LayerOutput:
    """
    Intermediate values of one transformer layer.

    Attributes:
        attention_scores: One (seq_len, seq_len) weight matrix per head
        attention_output: Combined heads, shape (seq_len, embed_dim)
        ffn_output: Feed-forward output before the second residual,
                    shape (seq_len, embed_dim)
        output: Layer output after the second LayerNorm,
                shape (seq_len, embed_dim)
    """

    attention_scores: List[np.ndarray]
    attention_output: np.ndarray
    ffn_output: np.ndarray
    output: np.ndarray


def combine_heads(head_outputs: List[np.ndarray], embed_dim: int) -> np.ndarray:
    """
    Average head outputs into one embed_dim-wide sequence.

    For each position i and output dimension d:
        combined[i, d] = sum_h head_outputs[h][i, d mod head_dim] / num_heads

    Args:
        head_outputs: One (seq_len, head_dim) array per head
        embed_dim: Width of the combined output

    Returns:
        Combined output of shape (seq_len, embed_dim)
    """
    num_heads = len(head_outputs)
    sequence_length, head_dim = head_outputs[0].shape

    # Column d of the result reads column d mod head_dim of each head
    source_columns = np.arange(embed_dim) % head_dim

    combined = np.zeros((sequence_length, embed_dim))
    for head_output in head_outputs:
        combined += head_output[:, source_columns] / num_heads

    return combined


def feed_forward(hidden: np.ndarray, ffn: FeedForwardWeights) -> np.ndarray:
    """
    Position-wise feed-forward network.

        FFN(x) = ReLU(x @ W1 + b1) @ W2 + b2

    Each row of hidden is transformed independently: (seq_len, E) ->
    (seq_len, 2E) -> (seq_len, E).
    """
    expanded = relu(hidden @ ffn.W1 + ffn.b1)
    return expanded @ ffn.W2 + ffn.b2


def transformer_layer(hidden: np.ndarray, layer: TransformerLayerWeights) -> LayerOutput:
    """
    Forward pass through one transformer layer.

    Args:
        hidden: Layer input, shape (seq_len, embed_dim)
        layer: This layer's head and feed-forward weights

    Returns:
        LayerOutput with the per-head scores and the new hidden sequence
    """
    embed_dim = hidden.shape[1]

    # ============ Attention Sub-block ============
    attention_scores = []
    head_outputs = []
    for head in layer.heads:
        scores, output = attention_head(hidden, head)
        attention_scores.append(scores)
        head_outputs.append(output)

    attention_output = combine_heads(head_outputs, embed_dim)

    # Residual connection + normalization
    after_attention = layer_norm(hidden + attention_output)

    # ============ Feed-Forward Sub-block ============
    ffn_output = feed_forward(after_attention, layer.ffn)

    # Residual connection + normalization
    output = layer_norm(after_attention + ffn_output)

    return LayerOutput(
        attention_scores=attention_scores,
        attention_output=attention_output,
        ffn_output=ffn_output,
        output=output,
    )


if __name__ == "__main__":
    from toy_llm.config import ModelConfig
    from toy_llm.weights import initialize_weights

    print("=" * 70)
    print("TRANSFORMER LAYER DEMO")
    print("=" * 70)
    print()

    config = ModelConfig(embed_dim=6, num_layers=1, num_heads=2)
    layer = initialize_weights(5, config, np.random.default_rng(0)).layers[0]
    hidden = np.random.default_rng(1).uniform(-0.5, 0.5, (3, config.embed_dim))

    result = transformer_layer(hidden, layer)

    print(f"Input shape:            {hidden.shape}")
    print(f"Heads:                  {len(result.attention_scores)} x {config.head_dim} wide")
    print(f"Combined heads shape:   {result.attention_output.shape}")
    print(f"Feed-forward shape:     {result.ffn_output.shape}")
    print(f"Output shape:           {result.output.shape}")
    print()
    print("After the final LayerNorm every row has mean ~0 and variance ~1:")
    print(f"  mean: {np.round(result.output.mean(axis=-1), 6)}")
    print(f"  var:  {np.round(result.output.var(axis=-1), 4)}")
    print()
    print("=" * 70)
