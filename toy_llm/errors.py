"""
Exceptions raised by the toy language model engine.

Every error here is a precondition violation: the engine fails fast instead
of returning a partial result, and callers are expected to validate their
inputs before invoking it.
"""


class ToyLLMError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(ToyLLMError, ValueError):
    """Invalid model hyperparameters or vocabulary size."""


class TokenIndexError(ToyLLMError, IndexError):
    """A token id outside [0, vocab_size) was used for an embedding lookup."""

    def __init__(self, token_id: int, vocab_size: int):
        self.token_id = token_id
        self.vocab_size = vocab_size
        super().__init__(
            f"Token id {token_id} is out of range for vocabulary of size {vocab_size}"
        )


class DegenerateInputError(ToyLLMError, ValueError):
    """An input sequence too short for the requested operation."""
