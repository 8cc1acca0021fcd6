"""
Tests for the parameter tree.

Tests cover:
- Initialization shapes and value ranges
- Deep cloning (no shared storage)
- Structural equality
- Nested-list serialization
"""

import json

import numpy as np
import pytest

from toy_llm.config import ModelConfig
from toy_llm.errors import ConfigurationError
from toy_llm.weights import (
    clone_weights,
    initialize_weights,
    weights_equal,
    weights_from_dict,
    weights_to_dict,
)


@pytest.fixture
def config():
    return ModelConfig(embed_dim=6, num_layers=2, num_heads=3, learning_rate=0.1)


@pytest.fixture
def weights(config):
    return initialize_weights(5, config, np.random.default_rng(0))


class TestInitializeWeights:
    """Shapes come from the config; values are random within fixed ranges."""

    def test_embedding_shape(self, weights):
        assert weights.embeddings.shape == (5, 6)
        assert weights.vocab_size == 5
        assert weights.embed_dim == 6

    def test_layer_and_head_shapes(self, weights, config):
        assert len(weights.layers) == 2
        for layer in weights.layers:
            assert len(layer.heads) == 3
            for head in layer.heads:
                assert head.Wq.shape == (6, 2)
                assert head.Wk.shape == (6, 2)
                assert head.Wv.shape == (6, 2)
                assert head.head_dim == config.head_dim

            assert layer.ffn.W1.shape == (6, 12)
            assert layer.ffn.b1.shape == (12,)
            assert layer.ffn.W2.shape == (12, 6)
            assert layer.ffn.b2.shape == (6,)

    def test_output_shapes(self, weights):
        assert weights.output.W.shape == (6, 5)
        assert weights.output.b.shape == (5,)

    def test_value_ranges(self, weights):
        """Embeddings lie in [-0.5, 0.5]; every other parameter in [-0.1, 0.1]."""
        assert np.all(np.abs(weights.embeddings) <= 0.5)
        for name, param in weights.named_parameters():
            if name != "embeddings":
                assert np.all(np.abs(param) <= 0.1), name

    def test_values_are_random(self, config):
        first = initialize_weights(5, config, np.random.default_rng(1))
        second = initialize_weights(5, config, np.random.default_rng(2))

        assert not weights_equal(first, second)

    def test_same_seed_same_weights(self, config):
        first = initialize_weights(5, config, np.random.default_rng(3))
        second = initialize_weights(5, config, np.random.default_rng(3))

        assert weights_equal(first, second)

    def test_default_generator(self, config):
        weights = initialize_weights(4, config)

        assert weights.embeddings.shape == (4, 6)

    def test_zero_layers(self):
        weights = initialize_weights(3, ModelConfig(embed_dim=4, num_layers=0, num_heads=1))

        assert weights.layers == []
        assert weights.output.W.shape == (4, 3)

    def test_truncated_heads(self):
        """With 5 dims and 2 heads every head is 2 wide."""
        config = ModelConfig(embed_dim=5, num_layers=1, num_heads=2, allow_head_truncation=True)
        weights = initialize_weights(3, config)

        for head in weights.layers[0].heads:
            assert head.Wq.shape == (5, 2)

    @pytest.mark.parametrize("vocab_size", [0, -1, 2.5])
    def test_invalid_vocab_size(self, config, vocab_size):
        with pytest.raises(ConfigurationError):
            initialize_weights(vocab_size, config)

    def test_count_parameters(self, weights):
        per_layer = 3 * 3 * 6 * 2 + (6 * 12 + 12 + 12 * 6 + 6)
        expected = 5 * 6 + 2 * per_layer + 6 * 5 + 5

        assert weights.count_parameters() == expected


class TestCloneWeights:
    def test_clone_is_equal(self, weights):
        assert weights_equal(clone_weights(weights), weights)

    def test_clone_shares_no_arrays(self, weights):
        clone = clone_weights(weights)

        for (name, original), (_, copied) in zip(
            weights.named_parameters(), clone.named_parameters()
        ):
            assert not np.shares_memory(original, copied), name

    def test_writing_clone_leaves_original(self, weights):
        snapshot = clone_weights(weights)
        clone = clone_weights(weights)

        clone.embeddings[0, 0] += 1.0
        clone.layers[1].heads[2].Wv[0, 0] += 1.0
        clone.layers[0].ffn.b2[0] += 1.0
        clone.output.b[4] += 1.0

        assert weights_equal(weights, snapshot)
        assert not weights_equal(clone, snapshot)


class TestWeightsEqual:
    def test_detects_value_change(self, weights):
        other = clone_weights(weights)
        other.layers[0].ffn.W1[3, 3] = 0.75

        assert not weights_equal(weights, other)

    def test_detects_structure_change(self, weights):
        other = clone_weights(weights)
        other.layers.pop()

        assert not weights_equal(weights, other)


class TestSerialization:
    def test_round_trip_through_json(self, weights):
        data = json.loads(json.dumps(weights_to_dict(weights)))
        restored = weights_from_dict(data)

        assert weights_equal(restored, weights)

    def test_round_trip_without_layers(self):
        weights = initialize_weights(2, ModelConfig(embed_dim=3, num_layers=0, num_heads=1))

        assert weights_equal(weights_from_dict(weights_to_dict(weights)), weights)

    def test_parameter_names(self, weights):
        names = [name for name, _ in weights.named_parameters()]

        assert names[0] == "embeddings"
        assert "layers.1.heads.2.Wk" in names
        assert "layers.0.ffn.b1" in names
        assert names[-2:] == ["output.W", "output.b"]
