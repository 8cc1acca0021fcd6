"""
Model Parameters

This module defines the parameter tree of the toy transformer and everything
that operates on it as a whole: random initialization, deep cloning,
structural comparison, and conversion to plain nested lists for storage.

The tree is a plain value. The engine never keeps a reference to it between
calls: the caller owns one live Weights instance, passes it to every call, and
receives a new, independent instance back from train_step.

Shapes (E = embed_dim, H = head_dim, V = vocab_size):
    embeddings:          (V, E)
    per head Wq, Wk, Wv: (E, H)
    ffn W1, b1:          (E, 2E), (2E,)
    ffn W2, b2:          (2E, E), (E,)
    output W, b:         (E, V), (V,)

Classes:
    AttentionHeadWeights, FeedForwardWeights, TransformerLayerWeights,
    OutputWeights, Weights

Functions:
    initialize_weights: Build a freshly randomized parameter tree
    clone_weights: Deep copy with no shared arrays
    weights_equal: Structural equality check
    weights_to_dict / weights_from_dict: Nested-list serialization
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np

from toy_llm.config import ModelConfig
from toy_llm.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Uniform initialization ranges: values are drawn from [-scale, scale]
EMBEDDING_SCALE = 0.5
PROJECTION_SCALE = 0.1


@dataclass
class AttentionHeadWeights:
    """Query, key and value projections of one head, each (embed_dim, head_dim)."""

    Wq: np.ndarray
    Wk: np.ndarray
    Wv: np.ndarray

    @property
    def head_dim(self) -> int:
        return self.Wq.shape[1]


@dataclass
class FeedForwardWeights:
    """Two-layer position-wise network: E -> 2E -> E."""

    W1: np.ndarray
    b1: np.ndarray
    W2: np.ndarray
    b2: np.ndarray


@dataclass
class TransformerLayerWeights:
    heads: List[AttentionHeadWeights]
    ffn: FeedForwardWeights


@dataclass
class OutputWeights:
    """Projection from the final hidden vector to vocabulary logits."""

    W: np.ndarray
    b: np.ndarray


@dataclass
class Weights:
    """
    Complete parameter tree of the model.

    Attributes:
        embeddings: One row per vocabulary token, shape (vocab_size, embed_dim)
        layers: Transformer layers, applied in order
        output: Output projection to the vocabulary
    """

    embeddings: np.ndarray
    layers: List[TransformerLayerWeights]
    output: OutputWeights

    @property
    def vocab_size(self) -> int:
        return self.embeddings.shape[0]

    @property
    def embed_dim(self) -> int:
        return self.embeddings.shape[1]

    def named_parameters(self) -> Iterator[Tuple[str, np.ndarray]]:
        """
        Yield (name, array) for every parameter in a fixed order.

        Names use the dotted form "layers.0.heads.1.Wq", which is also the key
        format of saved checkpoints.
        """
        yield "embeddings", self.embeddings
        for layer_index, layer in enumerate(self.layers):
            prefix = f"layers.{layer_index}"
            for head_index, head in enumerate(layer.heads):
                yield f"{prefix}.heads.{head_index}.Wq", head.Wq
                yield f"{prefix}.heads.{head_index}.Wk", head.Wk
                yield f"{prefix}.heads.{head_index}.Wv", head.Wv
            yield f"{prefix}.ffn.W1", layer.ffn.W1
            yield f"{prefix}.ffn.b1", layer.ffn.b1
            yield f"{prefix}.ffn.W2", layer.ffn.W2
            yield f"{prefix}.ffn.b2", layer.ffn.b2
        yield "output.W", self.output.W
        yield "output.b", self.output.b

    def count_parameters(self) -> int:
        """Count total number of parameters in the model."""
        return sum(param.size for _, param in self.named_parameters())


def _random_array(
    rng: np.random.Generator, shape: Tuple[int, ...], scale: float
) -> np.ndarray:
    return rng.uniform(-1.0, 1.0, size=shape) * scale


def initialize_weights(
    vocab_size: int,
    config: ModelConfig,
    rng: Optional[np.random.Generator] = None,
) -> Weights:
    """
    Build a randomly initialized parameter tree.

    Shapes depend only on vocab_size and config; values are random:
    embedding rows are uniform in [-0.5, 0.5] and every projection matrix and
    bias vector is uniform in [-0.1, 0.1].

    Args:
        vocab_size: Number of tokens in the vocabulary (must be positive)
        config: Model hyperparameters
        rng: Random generator; a fresh unseeded generator when omitted

    Returns:
        A new Weights value

    Raises:
        ConfigurationError: If vocab_size is not a positive integer
    """
    if isinstance(vocab_size, bool) or not isinstance(vocab_size, (int, np.integer)):
        raise ConfigurationError(f"vocab_size must be an integer, got {vocab_size!r}")
    if vocab_size <= 0:
        raise ConfigurationError(f"vocab_size must be positive, got {vocab_size}")

    if rng is None:
        rng = np.random.default_rng()

    embed_dim = config.embed_dim
    head_dim = config.head_dim
    hidden_dim = config.ffn_hidden_dim

    embeddings = _random_array(rng, (vocab_size, embed_dim), EMBEDDING_SCALE)

    layers = []
    for _ in range(config.num_layers):
        heads = [
            AttentionHeadWeights(
                Wq=_random_array(rng, (embed_dim, head_dim), PROJECTION_SCALE),
                Wk=_random_array(rng, (embed_dim, head_dim), PROJECTION_SCALE),
                Wv=_random_array(rng, (embed_dim, head_dim), PROJECTION_SCALE),
            )
            for _ in range(config.num_heads)
        ]
        ffn = FeedForwardWeights(
            W1=_random_array(rng, (embed_dim, hidden_dim), PROJECTION_SCALE),
            b1=_random_array(rng, (hidden_dim,), PROJECTION_SCALE),
            W2=_random_array(rng, (hidden_dim, embed_dim), PROJECTION_SCALE),
            b2=_random_array(rng, (embed_dim,), PROJECTION_SCALE),
        )
        layers.append(TransformerLayerWeights(heads=heads, ffn=ffn))

    output = OutputWeights(
        W=_random_array(rng, (embed_dim, vocab_size), PROJECTION_SCALE),
        b=_random_array(rng, (vocab_size,), PROJECTION_SCALE),
    )

    weights = Weights(embeddings=embeddings, layers=layers, output=output)
    logger.debug(
        "Initialized weights: vocab_size=%d, embed_dim=%d, layers=%d, heads=%d, "
        "parameters=%d",
        vocab_size,
        embed_dim,
        config.num_layers,
        config.num_heads,
        weights.count_parameters(),
    )
    return weights


def clone_weights(weights: Weights) -> Weights:
    """
    Deep-copy a parameter tree.

    Every array is copied explicitly, so the clone shares no storage with the
    original: writing into one never changes the other.
    """
    return Weights(
        embeddings=weights.embeddings.copy(),
        layers=[
            TransformerLayerWeights(
                heads=[
                    AttentionHeadWeights(
                        Wq=head.Wq.copy(), Wk=head.Wk.copy(), Wv=head.Wv.copy()
                    )
                    for head in layer.heads
                ],
                ffn=FeedForwardWeights(
                    W1=layer.ffn.W1.copy(),
                    b1=layer.ffn.b1.copy(),
                    W2=layer.ffn.W2.copy(),
                    b2=layer.ffn.b2.copy(),
                ),
            )
            for layer in weights.layers
        ],
        output=OutputWeights(W=weights.output.W.copy(), b=weights.output.b.copy()),
    )


def weights_equal(a: Weights, b: Weights) -> bool:
    """True if both trees have the same structure and identical values."""
    params_a = list(a.named_parameters())
    params_b = list(b.named_parameters())
    if [name for name, _ in params_a] != [name for name, _ in params_b]:
        return False
    return all(
        np.array_equal(param_a, param_b)
        for (_, param_a), (_, param_b) in zip(params_a, params_b)
    )


def weights_to_dict(weights: Weights) -> Dict[str, Any]:
    """
    Convert a parameter tree to nested dicts and lists of floats.

    The result mirrors the tree structure and can be written with json.dump.
    """
    return {
        "embeddings": weights.embeddings.tolist(),
        "layers": [
            {
                "heads": [
                    {
                        "Wq": head.Wq.tolist(),
                        "Wk": head.Wk.tolist(),
                        "Wv": head.Wv.tolist(),
                    }
                    for head in layer.heads
                ],
                "ffn": {
                    "W1": layer.ffn.W1.tolist(),
                    "b1": layer.ffn.b1.tolist(),
                    "W2": layer.ffn.W2.tolist(),
                    "b2": layer.ffn.b2.tolist(),
                },
            }
            for layer in weights.layers
        ],
        "output": {"W": weights.output.W.tolist(), "b": weights.output.b.tolist()},
    }


def _matrix(values, columns: int) -> np.ndarray:
    # An empty list would otherwise come back with shape (0,)
    return np.array(values, dtype=np.float64).reshape(-1, columns)


def weights_from_dict(data: Dict[str, Any]) -> Weights:
    """Rebuild a parameter tree from the output of weights_to_dict."""
    embeddings = np.array(data["embeddings"], dtype=np.float64)
    output_bias = np.array(data["output"]["b"], dtype=np.float64)

    layers = []
    for layer_data in data["layers"]:
        heads = []
        for head_data in layer_data["heads"]:
            head_dim = len(head_data["Wq"][0])
            heads.append(
                AttentionHeadWeights(
                    Wq=_matrix(head_data["Wq"], head_dim),
                    Wk=_matrix(head_data["Wk"], head_dim),
                    Wv=_matrix(head_data["Wv"], head_dim),
                )
            )
        ffn_data = layer_data["ffn"]
        ffn = FeedForwardWeights(
            W1=np.array(ffn_data["W1"], dtype=np.float64),
            b1=np.array(ffn_data["b1"], dtype=np.float64),
            W2=np.array(ffn_data["W2"], dtype=np.float64),
            b2=np.array(ffn_data["b2"], dtype=np.float64),
        )
        layers.append(TransformerLayerWeights(heads=heads, ffn=ffn))

    output = OutputWeights(
        W=_matrix(data["output"]["W"], output_bias.shape[0]), b=output_bias
    )
    return Weights(embeddings=embeddings, layers=layers, output=output)
