"""
Utility Functions for Checkpointing

Weights can be stored in two ways: as part of a JSON session snapshot (see
toy_llm.session) or as a compact NumPy .npz checkpoint, handled here.

Functions:
    save_checkpoint: Save weights and training step to .npz
    load_checkpoint: Load weights and training step from .npz
"""

import re
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from toy_llm.weights import (
    AttentionHeadWeights,
    FeedForwardWeights,
    OutputWeights,
    TransformerLayerWeights,
    Weights,
)

_HEAD_PARAM = re.compile(r"^layers\.(\d+)\.heads\.(\d+)\.(Wq|Wk|Wv)$")
_FFN_PARAM = re.compile(r"^layers\.(\d+)\.ffn\.(W1|b1|W2|b2)$")


def save_checkpoint(
    weights: Weights,
    filepath: str,
    step: int = 0,
    extra_data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Save a model checkpoint.

    Saves every parameter under "param_<name>" (names from
    Weights.named_parameters), the training step, and optional extra values.

    Args:
        weights: Parameters to save
        filepath: Path to save checkpoint (numpy appends .npz if missing)
        step: Current training step
        extra_data: Optional additional data to save
    """
    save_dict = {}

    for name, param in weights.named_parameters():
        save_dict[f"param_{name}"] = param

    save_dict["step"] = np.array([step])

    if extra_data is not None:
        for key, value in extra_data.items():
            save_dict[f"extra_{key}"] = np.array([value])

    np.savez(filepath, **save_dict)


def load_checkpoint(filepath: str) -> Tuple[Weights, int]:
    """
    Load a model checkpoint.

    Args:
        filepath: Path to a file written by save_checkpoint

    Returns:
        Tuple of (weights, step)

    Raises:
        KeyError: If a required parameter is missing from the file
    """
    with np.load(filepath, allow_pickle=False) as data:
        params = {
            key[len("param_"):]: np.array(data[key])
            for key in data.files
            if key.startswith("param_")
        }
        step = int(data["step"][0]) if "step" in data.files else 0

    return _weights_from_params(params), step


def _weights_from_params(params: Dict[str, np.ndarray]) -> Weights:
    heads: Dict[int, Dict[int, Dict[str, np.ndarray]]] = {}
    ffns: Dict[int, Dict[str, np.ndarray]] = {}

    for name, param in params.items():
        head_match = _HEAD_PARAM.match(name)
        if head_match:
            layer_index, head_index = int(head_match.group(1)), int(head_match.group(2))
            heads.setdefault(layer_index, {}).setdefault(head_index, {})[
                head_match.group(3)
            ] = param
            continue
        ffn_match = _FFN_PARAM.match(name)
        if ffn_match:
            ffns.setdefault(int(ffn_match.group(1)), {})[ffn_match.group(2)] = param

    layers: List[TransformerLayerWeights] = []
    for layer_index in range(len(ffns)):
        layer_heads = heads[layer_index]
        ffn = ffns[layer_index]
        layers.append(
            TransformerLayerWeights(
                heads=[
                    AttentionHeadWeights(
                        Wq=layer_heads[head_index]["Wq"],
                        Wk=layer_heads[head_index]["Wk"],
                        Wv=layer_heads[head_index]["Wv"],
                    )
                    for head_index in range(len(layer_heads))
                ],
                ffn=FeedForwardWeights(
                    W1=ffn["W1"], b1=ffn["b1"], W2=ffn["W2"], b2=ffn["b2"]
                ),
            )
        )

    return Weights(
        embeddings=params["embeddings"],
        layers=layers,
        output=OutputWeights(W=params["output.W"], b=params["output.b"]),
    )


if __name__ == "__main__":
    import os
    import tempfile

    from toy_llm.config import ModelConfig
    from toy_llm.weights import initialize_weights, weights_equal

    print("=" * 70)
    print("UTILITIES DEMO - Checkpointing")
    print("=" * 70)
    print()

    weights = initialize_weights(
        8, ModelConfig(embed_dim=4, num_layers=2, num_heads=2), np.random.default_rng(0)
    )
    print(f"Parameters: {weights.count_parameters():,}")

    with tempfile.TemporaryDirectory() as tmpdir:
        checkpoint_path = os.path.join(tmpdir, "toy.npz")
        save_checkpoint(weights, checkpoint_path, step=42)
        print(f"Saved {os.path.getsize(checkpoint_path):,} bytes to {checkpoint_path}")

        loaded, step = load_checkpoint(checkpoint_path)
        print(f"Loaded step {step}, identical weights: {weights_equal(loaded, weights)}")
    print()
    print("=" * 70)
