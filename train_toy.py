#!/usr/bin/env python3
"""
Training Script for the Toy Language Model

Trains the toy next-word model on a handful of sentences and shows how its
predictions change. Progress is saved after every report, so running the
script again resumes where the previous run stopped.

Usage:
    python train_toy.py
    python train_toy.py --iterations 200 --seed 0
    python train_toy.py --corpus sentences.txt --state-dir state --reset

The script will:
1. Load the saved session (or start a new one on the default corpus)
2. Build the vocabulary from the corpus
3. Initialize weights if the session has none
4. Run training steps, printing loss and predictions
5. Save the session and optionally an .npz weight checkpoint
"""

import argparse
import logging
import os
import sys
import time

import numpy as np

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from toy_llm.config import ModelConfig
from toy_llm.errors import ToyLLMError
from toy_llm.session import TrainingProgress, TrainingSession
from toy_llm.storage import JsonFileStorage
from toy_llm.utils import save_checkpoint


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Train the toy language model")
    parser.add_argument("--iterations", type=int, default=500, help="Total training steps")
    parser.add_argument("--embed-dim", type=int, default=8)
    parser.add_argument("--num-layers", type=int, default=3)
    parser.add_argument("--num-heads", type=int, default=2)
    parser.add_argument("--learning-rate", type=float, default=0.01)
    parser.add_argument(
        "--corpus", type=str, default=None, help="Text file with one sentence per line"
    )
    parser.add_argument(
        "--state-dir", type=str, default="state", help="Where the session is saved"
    )
    parser.add_argument("--reset", action="store_true", help="Discard any saved session")
    parser.add_argument("--checkpoint", type=str, default=None, help="Write weights to this .npz file")
    parser.add_argument("--report-every", type=int, default=50)
    parser.add_argument("--prompt", type=str, default="the cat")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--log-level", type=str, default="WARNING")
    return parser.parse_args(argv)


def read_corpus(path: str):
    with open(path, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


def create_session(args: argparse.Namespace, storage: JsonFileStorage) -> TrainingSession:
    """Resume the saved session if it matches the requested setup, else start fresh."""
    config = ModelConfig(
        embed_dim=args.embed_dim,
        num_layers=args.num_layers,
        num_heads=args.num_heads,
        learning_rate=args.learning_rate,
    )
    corpus = read_corpus(args.corpus) if args.corpus else None

    if args.reset:
        session = TrainingSession.reset(storage)
    else:
        session = TrainingSession.load(storage)

    if session.config != config or (corpus is not None and corpus != session.corpus):
        if session.progress.iteration > 0:
            print("Saved session uses a different setup; starting a new one.")
        session = TrainingSession(corpus=corpus, config=config)

    session.progress.max_iterations = args.iterations
    return session


def main(argv=None):
    """Main training function."""
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    rng = np.random.default_rng(args.seed)

    print("=" * 60)
    print("Toy Language Model Training")
    print("=" * 60)
    print()

    storage = JsonFileStorage(args.state_dir)
    try:
        session = create_session(args, storage)
    except ToyLLMError as error:
        print(f"Invalid configuration: {error}")
        return 1

    # ==================== Vocabulary ====================
    vocabulary = session.build_vocabulary()
    print(f"Corpus: {len(session.corpus)} sentences")
    print(f"Vocabulary size: {len(vocabulary)}")
    print()

    # ==================== Model ====================
    if session.weights is None:
        session.initialize_weights(rng)
        session.progress = TrainingProgress(max_iterations=args.iterations)

    config = session.config
    print(f"Model parameters: {session.weights.count_parameters():,}")
    print(f"  - Embedding dim: {config.embed_dim}")
    print(f"  - Layers: {config.num_layers}")
    print(f"  - Heads: {config.num_heads} (head dim {config.head_dim})")
    print(f"  - Learning rate: {config.learning_rate}")
    print()

    # ==================== Training Loop ====================
    start_iteration = session.progress.iteration
    if session.progress.is_complete:
        print(f"Session already completed {start_iteration} iterations.")
    else:
        print(f"Starting training at iteration {start_iteration}...")
        print("-" * 60)

    start_time = time.time()
    while not session.progress.is_complete:
        try:
            record = session.step(rng)
        except ToyLLMError as error:
            print(f"Training stopped: {error}")
            session.save(storage)
            return 1

        iteration = session.progress.iteration
        if iteration % args.report_every == 0 or session.progress.is_complete:
            best_word, best_prob = record.predictions[0]
            print(
                f"Step {iteration}/{session.progress.max_iterations} | "
                f"Loss: {record.step.loss:.4f} | "
                f"Avg Loss: {session.average_loss():.4f} | "
                f"'{record.pair.sentence}' -> {best_word} ({best_prob:.2f})"
            )
            session.save(storage)

    elapsed = time.time() - start_time
    session.save(storage)

    # ==================== Results ====================
    print("-" * 60)
    print(f"Training took {elapsed:.1f}s")
    print(f"Average loss (last 50 steps): {session.average_loss():.4f}")
    print(f"Saved session to {args.state_dir}")

    if args.checkpoint:
        save_checkpoint(session.weights, args.checkpoint, step=session.progress.iteration)
        print(f"Saved checkpoint to {args.checkpoint}")

    print()
    try:
        predictions = session.predict(args.prompt)
    except ToyLLMError as error:
        print(f"Cannot predict after {args.prompt!r}: {error}")
    else:
        print(f"Next word after '{args.prompt}':")
        for word, probability in predictions:
            print(f"  {word:<10} {probability:.3f}")

    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
