# imageprep/models.py
from __future__ import annotations

from typing import Any, Dict, List, Sequence
import torch
import torch.nn as nn

NUM_CLASSES = 2

ACTIVATIONS = {
    "relu": nn.ReLU,
    "tanh": nn.Tanh,
    "sigmoid": nn.Sigmoid,
    "identity": nn.Identity,
}


def default_model_config() -> Dict[str, Any]:
    return {
        "input_channels": 1,
        "image_size": [240, 320],   # [height, width], matches the low-res tree
        "layers": [128],
        "activations": ["relu"],
        "dropout": 0.0,
        "normalization": {"mean": 0.5, "std": 0.5},
    }


def activation(name: str) -> nn.Module:
    try:
        return ACTIVATIONS[str(name).strip().lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown activation '{name}', expected one of: {', '.join(ACTIVATIONS)}"
        ) from None


class BinaryMLP(nn.Module):
    """Scores a flattened image against the two classes; forward() returns raw logits."""

    def __init__(
            self,
            input_size: int,
            layers: Sequence[int],
            activations: Sequence[str],
            dropout: float = 0.0,
    ) -> None:
        super().__init__()
        if len(layers) != len(activations):
            raise ValueError("layers and activations must have the same length")
        if not (0.0 <= dropout < 1.0):
            raise ValueError("dropout must be in [0.0, 1.0)")

        widths = [int(input_size)] + [int(w) for w in layers]
        blocks: List[nn.Module] = []
        for (n_in, n_out), act in zip(zip(widths, widths[1:]), activations):
            blocks += [nn.Linear(n_in, n_out), activation(act)]
            if dropout:
                blocks.append(nn.Dropout(p=dropout))
        blocks.append(nn.Linear(widths[-1], NUM_CLASSES))
        self.net = nn.Sequential(*blocks)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.net(torch.flatten(x, start_dim=1))


# ---------------- Factories ----------------
def resolve_model_config(m: Dict[str, Any]) -> Dict[str, Any]:
    """Fill missing keys from the defaults and normalize types; returns a new dict."""
    out = default_model_config()
    out.update(m or {})
    out["input_channels"] = int(out["input_channels"])
    if out["input_channels"] not in (1, 3):
        raise ValueError("model.input_channels must be 1 or 3")
    size = [int(x) for x in out["image_size"]]
    if len(size) != 2 or min(size) <= 0:
        raise ValueError("model.image_size must be [height, width] with positive values")
    out["image_size"] = size
    out["layers"] = [int(x) for x in out["layers"]]
    out["activations"] = [str(a).lower() for a in out["activations"]]
    out["dropout"] = float(out["dropout"])
    return out


def build_classifier_from_cfg(m: Dict[str, Any]) -> BinaryMLP:
    """
    Create the classifier from a model config section:
        {"input_channels": 1, "image_size": [H, W], "layers": [...],
         "activations": [...], "dropout": 0.0}
    """
    m = resolve_model_config(m)
    h, w = m["image_size"]
    return BinaryMLP(
        input_size=m["input_channels"] * h * w,
        layers=m["layers"],
        activations=m["activations"],
        dropout=m["dropout"],
    )


__all__ = ["NUM_CLASSES", "BinaryMLP", "default_model_config",
           "resolve_model_config", "build_classifier_from_cfg"]
