"""
Toy Language Model: Forward Pass and Training Step

This module ties the components together into a next-word predictor and a
simplified training update.

Architecture Overview:
    Input Token IDs
           |
    [Embedding lookup]
           |
    [Transformer Layer] x N
       - Causal multi-head attention (heads averaged)
       - Residual Connection + LayerNorm
       - Feed-Forward Network
       - Residual Connection + LayerNorm
           |
    [Last position only]
           |
    [Linear Projection] -> Vocabulary Logits
           |
    [Softmax] -> Token Probabilities

The engine is stateless. Every call receives the Weights value explicitly and
train_step returns a new, independent Weights value; nothing is cached between
calls.

Classes:
    ForwardResult: Everything the forward pass computed
    TrainStepResult: Output of one training step

Functions:
    forward: Predict the next token
    train_step: One forward pass plus a simplified parameter update
    top_predictions: Most likely next words for display
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from toy_llm.activations import cross_entropy_loss, softmax
from toy_llm.errors import DegenerateInputError, TokenIndexError
from toy_llm.tokenizer import detokenize
from toy_llm.transformer import LayerOutput, transformer_layer
from toy_llm.weights import Weights, clone_weights

logger = logging.getLogger(__name__)

# Scale of the random embedding perturbation applied by train_step
EMBEDDING_NOISE_SCALE = 0.1


@dataclass
class ForwardResult:
    """
    Result of one forward pass.

    Every array here is freshly computed or copied; none of them is a view
    into the Weights that produced it.

    Attributes:
        input_tokens: The input token ids
        embeddings: Embedding rows of the input, shape (seq_len, embed_dim)
        layer_outputs: Intermediate values of each transformer layer
        final_hidden: Hidden vector at the last position that feeds the output
                      projection, shape (embed_dim,)
        logits: Unnormalized scores over the vocabulary, shape (vocab_size,)
        probabilities: Softmax of the logits
        predicted_token: Index of the highest probability (first one on ties)
        target_token: The target, if one was supplied
        loss: Cross-entropy loss of the target, if one was supplied
    """

    input_tokens: List[int]
    embeddings: np.ndarray
    layer_outputs: List[LayerOutput]
    final_hidden: np.ndarray
    logits: np.ndarray
    probabilities: np.ndarray
    predicted_token: int
    target_token: Optional[int] = None
    loss: Optional[float] = None

    @property
    def attention_scores(self) -> List[List[np.ndarray]]:
        """Per-layer list of per-head (seq_len, seq_len) score matrices."""
        return [layer.attention_scores for layer in self.layer_outputs]


class TrainStepResult(NamedTuple):
    new_weights: Weights
    loss: float
    result: ForwardResult


def _check_token(token_id: int, vocab_size: int) -> int:
    if isinstance(token_id, bool) or not isinstance(token_id, (int, np.integer)):
        raise TypeError(f"Token ids must be integers, got {token_id!r}")
    if token_id < 0 or token_id >= vocab_size:
        raise TokenIndexError(int(token_id), vocab_size)
    return int(token_id)


def forward(
    input_tokens: Sequence[int],
    weights: Weights,
    target_token: Optional[int] = None,
) -> ForwardResult:
    """
    Forward pass: predict the token that follows input_tokens.

    Steps:
        1. Gather the embedding row of each input token
        2. Apply every transformer layer in order
        3. Take the hidden vector at the last position
        4. logits = hidden @ W_out + b_out
        5. probabilities = softmax(logits)
        6. loss = cross_entropy(probabilities, target) if a target is given

    The pass is deterministic: the same tokens and weights always give
    bit-identical logits, probabilities and loss.

    Args:
        input_tokens: Non-empty sequence of ids in [0, vocab_size)
        weights: Model parameters (not modified)
        target_token: Optional id of the correct next token

    Returns:
        ForwardResult with all intermediate values

    Raises:
        DegenerateInputError: If input_tokens is empty
        TokenIndexError: If any input id or the target is out of range
    """
    vocab_size = weights.vocab_size
    tokens = [_check_token(token_id, vocab_size) for token_id in input_tokens]
    if not tokens:
        raise DegenerateInputError("forward() needs at least one input token")
    if target_token is not None:
        target_token = _check_token(target_token, vocab_size)

    # Step 1: Embedding lookup (fancy indexing returns a copy)
    embeddings = weights.embeddings[tokens]

    # Step 2: Transformer layers
    hidden = embeddings
    layer_outputs = []
    for layer in weights.layers:
        layer_output = transformer_layer(hidden, layer)
        layer_outputs.append(layer_output)
        hidden = layer_output.output

    # Step 3: Only the last position predicts the next token
    final_hidden = hidden[-1].copy()

    # Step 4-5: Project to the vocabulary
    logits = final_hidden @ weights.output.W + weights.output.b
    probabilities = softmax(logits)
    predicted_token = int(np.argmax(probabilities))

    # Step 6: Loss
    loss = None
    if target_token is not None:
        loss = cross_entropy_loss(probabilities, target_token)

    return ForwardResult(
        input_tokens=tokens,
        embeddings=embeddings,
        layer_outputs=layer_outputs,
        final_hidden=final_hidden,
        logits=logits,
        probabilities=probabilities,
        predicted_token=predicted_token,
        target_token=target_token,
        loss=loss,
    )


def train_step(
    input_tokens: Sequence[int],
    target_token: int,
    weights: Weights,
    learning_rate: float,
    rng: Optional[np.random.Generator] = None,
) -> TrainStepResult:
    """
    One simplified training step on a single (input, target) example.

    The update is not full backpropagation. Only two parts of the model move:

    Output layer (exact gradient of single-example softmax regression):
        error_v = 1[v == target] - p_v
        W_out[d, v] += lr * error_v * final_hidden[d]
        b_out[v]    += lr * error_v

    Embeddings (random perturbation, not a gradient):
        For every occurrence of a token in input_tokens, each coordinate of
        its embedding row gets lr * uniform(-0.5, 0.5) * 0.1 added,
        regardless of the loss.

    Attention heads and feed-forward blocks are never updated: they keep
    their initial values for the whole session.

    final_hidden is the vector the forward pass actually projected: the last
    position of the last layer after its second LayerNorm (the embedding
    when there are no layers). The raw feed-forward output of the last layer,
    before the residual and LayerNorm, is not used: the output-layer update
    is the exact gradient of the loss returned here.

    Args:
        input_tokens: Input prefix (the caller splits a sentence into prefix
                      and next word)
        target_token: Id of the word that follows the prefix
        weights: Current parameters (never modified)
        learning_rate: Step size
        rng: Random generator for the embedding perturbation

    Returns:
        TrainStepResult(new_weights, loss, result) where result is the forward
        pass on the original weights and loss is its cross-entropy

    Raises:
        TypeError: If target_token is missing or not an integer
        TokenIndexError: If any input id or the target is out of range
    """
    # error[None] would update every vocabulary entry
    target_token = _check_token(target_token, weights.vocab_size)

    if rng is None:
        rng = np.random.default_rng()

    # Forward pass on the unchanged weights
    result = forward(input_tokens, weights, target_token)
    loss = result.loss

    # Full deep copy: the caller's weights stay untouched
    new_weights = clone_weights(weights)

    # ============ Output layer update ============
    error = -result.probabilities
    error[result.target_token] += 1.0

    new_weights.output.W += learning_rate * np.outer(result.final_hidden, error)
    new_weights.output.b += learning_rate * error

    # ============ Embedding perturbation ============
    embed_dim = new_weights.embed_dim
    for token_id in result.input_tokens:
        adjustment = learning_rate * rng.uniform(-0.5, 0.5, size=embed_dim)
        new_weights.embeddings[token_id] += adjustment * EMBEDDING_NOISE_SCALE

    logger.debug(
        "train_step: tokens=%s target=%d loss=%.4f predicted=%d",
        result.input_tokens,
        result.target_token,
        loss,
        result.predicted_token,
    )

    return TrainStepResult(new_weights=new_weights, loss=loss, result=result)


def top_predictions(
    result: ForwardResult, vocabulary: Dict[str, int], k: int = 5
) -> List[Tuple[str, float]]:
    """
    The k most likely next words.

    Args:
        result: A forward pass result
        vocabulary: Word to id mapping used to name the tokens
        k: Number of predictions to return (at least 1; larger than the
           vocabulary returns every word)

    Returns:
        List of (word, probability), most likely first. Equal probabilities
        keep ascending id order.

    Raises:
        ValueError: If k is less than 1
    """
    if k < 1:
        raise ValueError(f"k must be at least 1, got {k}")

    order = np.argsort(-result.probabilities, kind="stable")[:k]
    return [
        (detokenize(int(token_id), vocabulary), float(result.probabilities[token_id]))
        for token_id in order
    ]


if __name__ == "__main__":
    from toy_llm.config import ModelConfig
    from toy_llm.tokenizer import Vocabulary, tokenize
    from toy_llm.weights import initialize_weights

    print("=" * 70)
    print("TOY MODEL DEMO - Forward Pass and Training Step")
    print("=" * 70)
    print()

    vocabulary = Vocabulary(["the", "cat", "sat"])
    config = ModelConfig(embed_dim=4, num_layers=1, num_heads=1, learning_rate=0.5)
    rng = np.random.default_rng(0)
    weights = initialize_weights(len(vocabulary), config, rng)

    input_tokens = tokenize("the cat", vocabulary)
    target_token = vocabulary["sat"]

    # -------------------------------------------------------------------------
    # FORWARD PASS
    # -------------------------------------------------------------------------
    print("-" * 70)
    print("1. FORWARD PASS - 'the cat' -> ?")
    print("-" * 70)
    print()
    result = forward(input_tokens, weights, target_token)
    for word, probability in top_predictions(result, vocabulary):
        print(f"  {word:<5} {probability:.3f}")
    print(f"Loss for 'sat': {result.loss:.4f}")
    print()

    # -------------------------------------------------------------------------
    # TRAINING
    # -------------------------------------------------------------------------
    print("-" * 70)
    print("2. TRAINING - Repeating the same example")
    print("-" * 70)
    print()
    for step in range(1, 21):
        outcome = train_step(input_tokens, target_token, weights, config.learning_rate, rng)
        weights = outcome.new_weights
        if step % 5 == 0:
            print(f"  Step {step:2d} | Loss: {outcome.loss:.4f}")
    print()

    result = forward(input_tokens, weights, target_token)
    print("Predictions after training:")
    for word, probability in top_predictions(result, vocabulary):
        print(f"  {word:<5} {probability:.3f}")
    print()
    print("=" * 70)
