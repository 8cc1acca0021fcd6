"""
Toy Transformer Language Model

This package implements a tiny next-word prediction model using only NumPy:
word embeddings, causal multi-head self-attention, a position-wise
feed-forward network, and a simplified single-example training step. It is
small enough to inspect every intermediate value.

Modules:
    vector_ops: Shape-checked vector and matrix primitives
    activations: Softmax, ReLU, layer normalization, cross-entropy loss
    config: Model hyperparameters and the default corpus
    weights: Parameter tree, initialization, cloning, serialization
    attention: Causal single-head attention
    transformer: Transformer layer (heads, feed-forward, residuals)
    model: Forward pass and training step
    tokenizer: Word-level vocabulary and tokenization
    storage: Key-value persistence
    session: Training session over a corpus
    utils: .npz weight checkpoints

Reference:
    "Attention Is All You Need" (Vaswani et al., 2017)
    https://arxiv.org/abs/1706.03762
"""

from toy_llm.config import DEFAULT_CONFIG, DEFAULT_CORPUS, ModelConfig
from toy_llm.errors import (
    ConfigurationError,
    DegenerateInputError,
    TokenIndexError,
    ToyLLMError,
)
from toy_llm.model import ForwardResult, TrainStepResult, forward, train_step
from toy_llm.tokenizer import Vocabulary, detokenize, tokenize
from toy_llm.weights import Weights, initialize_weights

__version__ = "1.0.0"

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_CORPUS",
    "ConfigurationError",
    "DegenerateInputError",
    "ForwardResult",
    "ModelConfig",
    "TokenIndexError",
    "ToyLLMError",
    "TrainStepResult",
    "Vocabulary",
    "Weights",
    "detokenize",
    "forward",
    "initialize_weights",
    "tokenize",
    "train_step",
]
