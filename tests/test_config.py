"""
Tests for model configuration.
"""

import dataclasses
import logging

import pytest

from toy_llm.config import DEFAULT_CONFIG, DEFAULT_CORPUS, ModelConfig
from toy_llm.errors import ConfigurationError


class TestModelConfig:
    """Test configuration dataclass."""

    def test_default_config(self):
        assert DEFAULT_CONFIG.embed_dim == 8
        assert DEFAULT_CONFIG.num_layers == 3
        assert DEFAULT_CONFIG.num_heads == 2
        assert DEFAULT_CONFIG.learning_rate == 0.01
        assert DEFAULT_CONFIG.head_dim == 4
        assert DEFAULT_CONFIG.ffn_hidden_dim == 16

    def test_default_corpus(self):
        assert len(DEFAULT_CORPUS) == 8
        assert DEFAULT_CORPUS[0] == "The cat sat on the mat."

    def test_config_is_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_CONFIG.embed_dim = 16

    def test_zero_layers_allowed(self):
        assert ModelConfig(embed_dim=4, num_layers=0, num_heads=1).num_layers == 0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"embed_dim": 0},
            {"embed_dim": -4},
            {"num_layers": -1},
            {"num_heads": 0},
            {"learning_rate": 0.0},
            {"learning_rate": -0.1},
            {"embed_dim": 4.0},
            {"num_heads": True},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ConfigurationError):
            ModelConfig(**overrides)

    def test_more_heads_than_dimensions_rejected(self):
        with pytest.raises(ConfigurationError, match="cannot exceed"):
            ModelConfig(embed_dim=2, num_heads=3, allow_head_truncation=True)

    def test_non_divisible_heads_rejected_by_default(self):
        with pytest.raises(ConfigurationError, match="divisible"):
            ModelConfig(embed_dim=5, num_heads=2)

    def test_non_divisible_heads_allowed_with_warning(self, caplog):
        """Truncation can be opted into, and is flagged in the log."""
        with caplog.at_level(logging.WARNING, logger="toy_llm.config"):
            config = ModelConfig(embed_dim=5, num_heads=2, allow_head_truncation=True)

        assert config.head_dim == 2
        assert "1 embedding dimensions are never projected" in caplog.text

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            ModelConfig(embed_dim=0)

    def test_dict_round_trip(self):
        config = ModelConfig(embed_dim=6, num_layers=2, num_heads=3, learning_rate=0.05)

        assert ModelConfig.from_dict(config.to_dict()) == config
