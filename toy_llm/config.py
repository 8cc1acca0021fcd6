"""
Model Configuration

Hyperparameters for the toy transformer, plus the default corpus used when a
training session starts from scratch.

Classes:
    ModelConfig: Validated, immutable hyperparameters

Constants:
    DEFAULT_CONFIG: The configuration a new session starts with
    DEFAULT_CORPUS: Eight short sentences over a tiny vocabulary
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from toy_llm.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelConfig:
    """
    Configuration for the toy transformer.

    Attributes:
        embed_dim: Width of every embedding and hidden vector (d_model)
        num_layers: Number of transformer layers (0 means embeddings feed the
                    output projection directly)
        num_heads: Attention heads per layer
        learning_rate: Step size used by train_step
        allow_head_truncation: Accept an embed_dim that num_heads does not
                               divide. Each head is then floor(embed_dim /
                               num_heads) wide and the combined attention
                               output wraps around those dimensions.

    The config is frozen: it is fixed for the lifetime of a training session.
    Invalid values raise ConfigurationError at construction time.

    Example:
        >>> config = ModelConfig(embed_dim=4, num_layers=1, num_heads=1)
        >>> config.head_dim
        4
    """

    embed_dim: int = 8
    num_layers: int = 3
    num_heads: int = 2
    learning_rate: float = 0.01
    allow_head_truncation: bool = False

    def __post_init__(self):
        for name in ("embed_dim", "num_layers", "num_heads"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")

        if self.embed_dim <= 0:
            raise ConfigurationError(f"embed_dim must be positive, got {self.embed_dim}")
        if self.num_layers < 0:
            raise ConfigurationError(
                f"num_layers must be non-negative, got {self.num_layers}"
            )
        if self.num_heads <= 0:
            raise ConfigurationError(f"num_heads must be positive, got {self.num_heads}")
        if not self.learning_rate > 0:
            raise ConfigurationError(
                f"learning_rate must be positive, got {self.learning_rate}"
            )
        if self.num_heads > self.embed_dim:
            raise ConfigurationError(
                f"num_heads ({self.num_heads}) cannot exceed embed_dim ({self.embed_dim})"
            )

        remainder = self.embed_dim % self.num_heads
        if remainder != 0:
            if not self.allow_head_truncation:
                raise ConfigurationError(
                    f"Embedding dimension ({self.embed_dim}) must be divisible by "
                    f"number of heads ({self.num_heads})"
                )
            logger.warning(
                "embed_dim=%d is not divisible by num_heads=%d: each head is %d wide "
                "and %d embedding dimensions are never projected by any head",
                self.embed_dim,
                self.num_heads,
                self.head_dim,
                remainder,
            )

    @property
    def head_dim(self) -> int:
        """Width of each attention head: floor(embed_dim / num_heads)."""
        return self.embed_dim // self.num_heads

    @property
    def ffn_hidden_dim(self) -> int:
        """The feed-forward network expands to twice the embedding width."""
        return 2 * self.embed_dim

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelConfig":
        return cls(
            embed_dim=int(data["embed_dim"]),
            num_layers=int(data["num_layers"]),
            num_heads=int(data["num_heads"]),
            learning_rate=float(data["learning_rate"]),
            allow_head_truncation=bool(data.get("allow_head_truncation", False)),
        )


DEFAULT_CONFIG = ModelConfig()

DEFAULT_CORPUS: List[str] = [
    "The cat sat on the mat.",
    "The dog ran in the park.",
    "A bird flew over the tree.",
    "The cat chased the bird.",
    "The dog sat on the mat.",
    "A bird sat in the tree.",
    "The cat ran in the park.",
    "The dog chased the cat.",
]
