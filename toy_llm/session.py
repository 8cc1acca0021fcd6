"""
Training Session

A session is the state of one walk through the toy model's training
pipeline: the corpus, the vocabulary built from it, the hyperparameters, the
single live Weights value, and training progress.

Training samples one example per step: a random sentence that has at least
two known words, cut at a random point into an input prefix and the next
word. Each step replaces the session's Weights with the new value returned by
train_step; steps run strictly one after another.

Sessions are saved to a Storage under the key "llm-model" as plain JSON, so a
run can be stopped and resumed.

Classes:
    TrainingProgress: Iteration counter and loss history
    TrainingPair: One sampled (prefix, next word) example
    StepRecord: What a single session step did
    TrainingSession: The session itself

Functions:
    split_training_example: Cut a token sequence into prefix and target
    sample_training_pair: Draw a random example from a corpus
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from toy_llm.config import DEFAULT_CONFIG, DEFAULT_CORPUS, ModelConfig
from toy_llm.errors import DegenerateInputError
from toy_llm.model import TrainStepResult, forward, top_predictions, train_step
from toy_llm.storage import Storage
from toy_llm.tokenizer import Vocabulary, build_vocabulary, tokenize
from toy_llm.weights import Weights, initialize_weights, weights_from_dict, weights_to_dict

logger = logging.getLogger(__name__)

MODEL_KEY = "llm-model"

STATUS_IDLE = "idle"
STATUS_TRAINING = "training"
STATUS_COMPLETED = "completed"
STATUSES = (STATUS_IDLE, STATUS_TRAINING, STATUS_COMPLETED)

# 1: corpus, 2: vocabulary, 3: embeddings / config, 4: training
STAGES = (1, 2, 3, 4)

DEFAULT_MAX_ITERATIONS = 500


@dataclass
class TrainingProgress:
    """
    Attributes:
        iteration: Number of completed training steps
        max_iterations: Steps after which the session is complete
        loss: Loss of the most recent step
        loss_history: Loss of every step so far
    """

    iteration: int = 0
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    loss: float = 0.0
    loss_history: List[float] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.iteration >= self.max_iterations

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iteration": self.iteration,
            "max_iterations": self.max_iterations,
            "loss": self.loss,
            "loss_history": list(self.loss_history),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrainingProgress":
        return cls(
            iteration=int(data["iteration"]),
            max_iterations=int(data["max_iterations"]),
            loss=float(data["loss"]),
            loss_history=[float(value) for value in data["loss_history"]],
        )


@dataclass
class TrainingPair:
    sentence: str
    input_tokens: List[int]
    target_token: int


@dataclass
class StepRecord:
    pair: TrainingPair
    step: TrainStepResult
    predictions: List[Tuple[str, float]]


def split_training_example(
    tokens: Sequence[int], split_point: int
) -> Tuple[List[int], int]:
    """
    Split a token sequence into an input prefix and the token that follows.

    Args:
        tokens: Token ids of a sentence
        split_point: Length of the prefix, in [1, len(tokens) - 1]

    Returns:
        (tokens[:split_point], tokens[split_point])

    Raises:
        DegenerateInputError: If tokens has fewer than 2 elements
        ValueError: If split_point is out of range
    """
    if len(tokens) < 2:
        raise DegenerateInputError(
            f"Need at least 2 tokens to form an (input, target) pair, got {len(tokens)}"
        )
    if not 1 <= split_point < len(tokens):
        raise ValueError(
            f"split_point must be in [1, {len(tokens) - 1}], got {split_point}"
        )
    return list(tokens[:split_point]), int(tokens[split_point])


def sample_training_pair(
    corpus: Sequence[str],
    vocabulary: Dict[str, int],
    rng: np.random.Generator,
) -> TrainingPair:
    """
    Draw one random training example.

    A sentence is chosen uniformly among those with at least two known words,
    then cut at a uniformly random point.

    Raises:
        DegenerateInputError: If no sentence has two known words
    """
    candidates = []
    for sentence in corpus:
        tokens = tokenize(sentence, vocabulary)
        if len(tokens) >= 2:
            candidates.append((sentence, tokens))

    if not candidates:
        raise DegenerateInputError(
            "No sentence in the corpus has at least 2 words from the vocabulary"
        )

    sentence, tokens = candidates[int(rng.integers(len(candidates)))]
    split_point = int(rng.integers(1, len(tokens)))
    input_tokens, target_token = split_training_example(tokens, split_point)

    return TrainingPair(
        sentence=sentence, input_tokens=input_tokens, target_token=target_token
    )


class TrainingSession:
    """
    One training session over a corpus.

    Example usage:
        session = TrainingSession()
        session.build_vocabulary()
        session.initialize_weights(rng)
        session.run(100, rng)
        print(session.predict("the cat"))

        storage = JsonFileStorage("state")
        session.save(storage)
        restored = TrainingSession.load(storage)

    Attributes:
        corpus: Training sentences
        vocabulary: Word to id mapping
        config: Model hyperparameters
        weights: The single live parameter tree (None until initialized)
        progress: Iteration count and loss history
        status: "idle", "training" or "completed"
        stage: Pipeline stage 1-4
    """

    def __init__(
        self,
        corpus: Optional[Sequence[str]] = None,
        vocabulary: Optional[Vocabulary] = None,
        config: ModelConfig = DEFAULT_CONFIG,
        weights: Optional[Weights] = None,
        progress: Optional[TrainingProgress] = None,
        status: str = STATUS_IDLE,
        stage: int = 1,
    ):
        if status not in STATUSES:
            raise ValueError(f"Unknown status {status!r}, expected one of {STATUSES}")
        if stage not in STAGES:
            raise ValueError(f"Unknown stage {stage!r}, expected one of {STAGES}")

        self.corpus = list(corpus) if corpus is not None else list(DEFAULT_CORPUS)
        if vocabulary is None:
            vocabulary = Vocabulary()
        elif not isinstance(vocabulary, Vocabulary):
            vocabulary = Vocabulary.from_dict(vocabulary)
        self.vocabulary = vocabulary
        self.config = config
        self.weights = weights
        self.progress = progress if progress is not None else TrainingProgress()
        self.status = status
        self.stage = stage

        if weights is not None and weights.vocab_size != len(self.vocabulary):
            raise ValueError(
                f"Weights have {weights.vocab_size} embedding rows but the "
                f"vocabulary has {len(self.vocabulary)} words"
            )

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    def build_vocabulary(self) -> Vocabulary:
        """
        Give every corpus word an id, keeping existing ids.

        If new words were added, existing weights no longer match the
        vocabulary size and are discarded.
        """
        previous_size = len(self.vocabulary)
        self.vocabulary = build_vocabulary(self.corpus, self.vocabulary)

        if len(self.vocabulary) != previous_size and self.weights is not None:
            logger.info(
                "Vocabulary grew from %d to %d words; discarding weights",
                previous_size,
                len(self.vocabulary),
            )
            self.weights = None

        self.stage = max(self.stage, 2)
        return self.vocabulary

    def initialize_weights(self, rng: Optional[np.random.Generator] = None) -> Weights:
        """Create fresh random weights sized to the current vocabulary."""
        self.weights = initialize_weights(len(self.vocabulary), self.config, rng)
        self.stage = max(self.stage, 3)
        return self.weights

    def step(self, rng: Optional[np.random.Generator] = None) -> Optional[StepRecord]:
        """
        Run one training step on a randomly sampled example.

        Returns:
            StepRecord of the step, or None if the session already reached
            max_iterations

        Raises:
            DegenerateInputError: If the corpus has no usable sentence
        """
        if self.progress.is_complete:
            self.status = STATUS_COMPLETED
            return None

        if rng is None:
            rng = np.random.default_rng()
        if self.weights is None:
            self.initialize_weights(rng)

        pair = sample_training_pair(self.corpus, self.vocabulary, rng)
        outcome = train_step(
            pair.input_tokens,
            pair.target_token,
            self.weights,
            self.config.learning_rate,
            rng,
        )
        predictions = top_predictions(outcome.result, self.vocabulary)

        self.weights = outcome.new_weights
        self.progress.iteration += 1
        self.progress.loss = outcome.loss
        self.progress.loss_history.append(outcome.loss)
        self.stage = 4
        self.status = STATUS_COMPLETED if self.progress.is_complete else STATUS_TRAINING

        return StepRecord(pair=pair, step=outcome, predictions=predictions)

    def run(
        self, num_steps: int, rng: Optional[np.random.Generator] = None
    ) -> List[float]:
        """
        Run up to num_steps training steps.

        Stops early when max_iterations is reached.

        Returns:
            Loss of every step that ran
        """
        if rng is None:
            rng = np.random.default_rng()

        losses = []
        for _ in range(num_steps):
            record = self.step(rng)
            if record is None:
                break
            losses.append(record.step.loss)
        return losses

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def average_loss(self, window: int = 50) -> float:
        """Mean loss of the last `window` steps (0.0 before any step)."""
        recent = self.progress.loss_history[-window:]
        if not recent:
            return 0.0
        return float(np.mean(recent))

    def predict(self, text: str, k: int = 5) -> List[Tuple[str, float]]:
        """
        Most likely next words after text.

        Raises:
            DegenerateInputError: If text contains no known word
            ValueError: If the session has no weights yet
        """
        if self.weights is None:
            raise ValueError("Session has no weights; initialize or train it first")

        tokens = tokenize(text, self.vocabulary)
        if not tokens:
            raise DegenerateInputError(f"No known words in {text!r}")

        return top_predictions(forward(tokens, self.weights), self.vocabulary, k)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "stage": self.stage,
            "corpus": list(self.corpus),
            "vocabulary": self.vocabulary.to_dict(),
            "config": self.config.to_dict(),
            "weights": weights_to_dict(self.weights) if self.weights is not None else None,
            "training_progress": self.progress.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrainingSession":
        weights_data = data.get("weights")
        return cls(
            corpus=data["corpus"],
            vocabulary=Vocabulary.from_dict(data["vocabulary"]),
            config=ModelConfig.from_dict(data["config"]),
            weights=weights_from_dict(weights_data) if weights_data is not None else None,
            progress=TrainingProgress.from_dict(data["training_progress"]),
            status=data["status"],
            stage=int(data["stage"]),
        )

    def save(self, storage: Storage, key: str = MODEL_KEY) -> None:
        storage.set(key, self.to_dict())
        logger.debug("Saved session at iteration %d", self.progress.iteration)

    @classmethod
    def load(cls, storage: Storage, key: str = MODEL_KEY) -> "TrainingSession":
        """Restore a saved session, or start a fresh one if nothing is stored."""
        data = storage.get(key)
        if data is None:
            logger.info("No saved session under %r; starting a new one", key)
            return cls()
        return cls.from_dict(data)

    @classmethod
    def reset(cls, storage: Storage, key: str = MODEL_KEY) -> "TrainingSession":
        """Delete the saved session and return a fresh one."""
        storage.remove(key)
        return cls()
