"""
Tests for the training session.

Tests cover:
- Splitting sentences into (prefix, next word) examples
- Pipeline stages and status
- Training progress and completion
- Saving, loading and resetting through a Storage
"""

import numpy as np
import pytest

from toy_llm.config import DEFAULT_CORPUS, ModelConfig
from toy_llm.errors import DegenerateInputError
from toy_llm.session import (
    MODEL_KEY,
    STATUS_COMPLETED,
    STATUS_IDLE,
    STATUS_TRAINING,
    TrainingProgress,
    TrainingSession,
    sample_training_pair,
    split_training_example,
)
from toy_llm.storage import InMemoryStorage, JsonFileStorage
from toy_llm.tokenizer import Vocabulary
from toy_llm.weights import initialize_weights, weights_equal

SMALL_CONFIG = ModelConfig(embed_dim=4, num_layers=1, num_heads=2, learning_rate=0.05)


@pytest.fixture
def session():
    session = TrainingSession(
        corpus=["The cat sat on the mat.", "The dog ran."], config=SMALL_CONFIG
    )
    session.build_vocabulary()
    session.initialize_weights(np.random.default_rng(0))
    return session


class TestSplitTrainingExample:
    def test_split(self):
        assert split_training_example([4, 5, 6], 2) == ([4, 5], 6)
        assert split_training_example([4, 5], 1) == ([4], 5)

    @pytest.mark.parametrize("tokens", [[], [3]])
    def test_too_short(self, tokens):
        with pytest.raises(DegenerateInputError):
            split_training_example(tokens, 1)

    @pytest.mark.parametrize("split_point", [0, 3, -1])
    def test_split_point_out_of_range(self, split_point):
        with pytest.raises(ValueError, match="split_point"):
            split_training_example([1, 2, 3], split_point)


class TestSampleTrainingPair:
    def test_pair_comes_from_a_sentence(self):
        vocabulary = Vocabulary(["the", "cat", "sat"])
        rng = np.random.default_rng(1)

        for _ in range(20):
            pair = sample_training_pair(["The cat sat.", "cat"], vocabulary, rng)

            assert pair.sentence == "The cat sat."
            assert 1 <= len(pair.input_tokens) <= 2
            full = pair.input_tokens + [pair.target_token]
            assert full == [0, 1, 2][: len(full)]

    def test_no_usable_sentence(self):
        vocabulary = Vocabulary(["the"])

        with pytest.raises(DegenerateInputError):
            sample_training_pair(["The dog.", "the"], vocabulary, np.random.default_rng(2))


class TestPipeline:
    def test_new_session_defaults(self):
        session = TrainingSession()

        assert session.corpus == list(DEFAULT_CORPUS)
        assert len(session.vocabulary) == 0
        assert session.weights is None
        assert session.status == STATUS_IDLE
        assert session.stage == 1

    def test_build_vocabulary_advances_stage(self):
        session = TrainingSession(corpus=["b a", "c"])

        vocabulary = session.build_vocabulary()

        assert vocabulary.to_dict() == {"a": 0, "b": 1, "c": 2}
        assert session.stage == 2

    def test_initialize_weights_sized_to_vocabulary(self, session):
        assert session.weights.vocab_size == len(session.vocabulary)
        assert session.weights.embed_dim == 4
        assert session.stage == 3

    def test_growing_vocabulary_discards_weights(self, session):
        session.corpus.append("A bird flew.")

        session.build_vocabulary()

        assert session.weights is None
        assert session.vocabulary["the"] == 6
        assert session.vocabulary["a"] == 7
        assert session.vocabulary["bird"] == 8

    def test_rebuilding_same_vocabulary_keeps_weights(self, session):
        weights = session.weights

        session.build_vocabulary()

        assert session.weights is weights

    def test_invalid_status_and_stage(self):
        with pytest.raises(ValueError):
            TrainingSession(status="paused")
        with pytest.raises(ValueError):
            TrainingSession(stage=5)

    def test_weights_must_match_vocabulary(self):
        weights = initialize_weights(3, SMALL_CONFIG)

        with pytest.raises(ValueError, match="embedding rows"):
            TrainingSession(vocabulary=Vocabulary(["a", "b"]), weights=weights)

    def test_dict_vocabulary_accepted(self):
        session = TrainingSession(vocabulary={"a": 0, "b": 1})

        assert isinstance(session.vocabulary, Vocabulary)


class TestTraining:
    def test_step_updates_progress(self, session):
        before = session.weights

        record = session.step(np.random.default_rng(3))

        assert record is not None
        assert session.weights is record.step.new_weights
        assert not weights_equal(session.weights, before)
        assert session.progress.iteration == 1
        assert session.progress.loss == record.step.loss
        assert session.progress.loss_history == [record.step.loss]
        assert session.status == STATUS_TRAINING
        assert session.stage == 4
        assert len(record.predictions) == 5

    def test_step_initializes_missing_weights(self):
        session = TrainingSession(corpus=["the cat sat"], config=SMALL_CONFIG)
        session.build_vocabulary()

        session.step(np.random.default_rng(4))

        assert session.weights is not None

    def test_run_stops_at_max_iterations(self, session):
        session.progress = TrainingProgress(max_iterations=5)

        losses = session.run(10, np.random.default_rng(5))

        assert len(losses) == 5
        assert session.progress.iteration == 5
        assert session.progress.is_complete
        assert session.status == STATUS_COMPLETED
        assert session.step(np.random.default_rng(6)) is None

    def test_losses_are_positive(self, session):
        losses = session.run(20, np.random.default_rng(7))

        assert all(loss > 0.0 for loss in losses)
        assert session.progress.loss_history == losses

    def test_average_loss(self, session):
        assert session.average_loss() == 0.0

        session.progress.loss_history = [1.0, 2.0, 3.0, 6.0]

        assert session.average_loss() == pytest.approx(3.0)
        assert session.average_loss(window=2) == pytest.approx(4.5)

    def test_training_lowers_loss_on_tiny_corpus(self):
        config = ModelConfig(embed_dim=8, num_layers=1, num_heads=2, learning_rate=0.1)
        session = TrainingSession(corpus=["the cat sat"], config=config)
        session.build_vocabulary()
        rng = np.random.default_rng(8)
        session.initialize_weights(rng)

        losses = session.run(300, rng)

        assert np.mean(losses[-50:]) < np.mean(losses[:50])


class TestPredict:
    def test_predictions(self, session):
        predictions = session.predict("the cat", k=3)

        assert len(predictions) == 3
        assert all(word in session.vocabulary for word, _ in predictions)
        probabilities = [probability for _, probability in predictions]
        assert probabilities == sorted(probabilities, reverse=True)

    def test_unknown_words_only(self, session):
        with pytest.raises(DegenerateInputError):
            session.predict("zebra!")

    def test_requires_weights(self):
        session = TrainingSession(corpus=["the cat"])
        session.build_vocabulary()

        with pytest.raises(ValueError, match="no weights"):
            session.predict("the")


class TestPersistence:
    def test_dict_round_trip(self, session):
        session.run(3, np.random.default_rng(9))

        restored = TrainingSession.from_dict(session.to_dict())

        assert restored.corpus == session.corpus
        assert restored.vocabulary.to_dict() == session.vocabulary.to_dict()
        assert restored.config == session.config
        assert weights_equal(restored.weights, session.weights)
        assert restored.progress == session.progress
        assert restored.status == session.status
        assert restored.stage == session.stage

    def test_save_and_load_json_files(self, session, tmp_path):
        session.run(2, np.random.default_rng(10))
        storage = JsonFileStorage(str(tmp_path))

        session.save(storage)
        restored = TrainingSession.load(storage)

        assert weights_equal(restored.weights, session.weights)
        assert restored.progress.iteration == 2
        assert (tmp_path / f"{MODEL_KEY}.json").exists()

    def test_save_without_weights(self):
        storage = InMemoryStorage()
        session = TrainingSession(corpus=["a b"])
        session.build_vocabulary()

        session.save(storage)

        restored = TrainingSession.load(storage)
        assert restored.weights is None
        assert restored.stage == 2

    def test_load_missing_starts_fresh(self):
        session = TrainingSession.load(InMemoryStorage())

        assert session.stage == 1
        assert session.weights is None

    def test_reset_removes_snapshot(self, session):
        storage = InMemoryStorage()
        session.save(storage)

        fresh = TrainingSession.reset(storage)

        assert MODEL_KEY not in storage
        assert fresh.status == STATUS_IDLE
        assert fresh.weights is None

    def test_custom_key(self, session):
        storage = InMemoryStorage()

        session.save(storage, key="other")

        assert storage.get(MODEL_KEY) is None
        assert TrainingSession.load(storage, key="other").stage == session.stage

    def test_load_undecodable_snapshot_starts_fresh(self, tmp_path):
        (tmp_path / f"{MODEL_KEY}.json").write_bytes(b"\xff\xfe{bad")

        session = TrainingSession.load(JsonFileStorage(str(tmp_path)))

        assert session.stage == 1
        assert session.weights is None
