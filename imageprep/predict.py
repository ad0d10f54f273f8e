# imageprep/predict.py
from __future__ import annotations

import fnmatch
import logging
from collections import OrderedDict
from pathlib import Path
from pickle import UnpicklingError
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

import torch
from torch import nn
from torch.nn import functional as F
from PIL import Image
from torchvision import transforms

from .models import NUM_CLASSES, build_classifier_from_cfg, resolve_model_config
from .utils import ensure_dir, pick_device, relative_display

log = logging.getLogger(__name__)

DEFAULT_LABELS = ["0", "1"]


class Prediction(NamedTuple):
    label: str
    scores: Tuple[float, float]


# ---- checkpoint loading compatible with PyTorch 2.6+ ----
def _load_checkpoint_any(ckpt_path: Path, device: torch.device):
    try:
        return torch.load(ckpt_path, map_location=device)
    except (UnpicklingError, RuntimeError, AttributeError) as e:
        # whole pickled modules need the full unpickler (trusted files only)
        log.debug("weights-only load of %s failed (%s); retrying with full unpickling", ckpt_path, e)
    return torch.load(ckpt_path, map_location=device, weights_only=False)


def _extract_state_dict(blob: Dict[str, Any]) -> OrderedDict:
    if "model_state" in blob:
        return blob["model_state"]
    if "state_dict" in blob:
        return blob["state_dict"]
    raise TypeError("Unsupported checkpoint format; expected 'model_state' or 'state_dict'.")


def save_checkpoint(model: nn.Module, model_cfg: Dict[str, Any], labels: Sequence[str], path: str | Path) -> Path:
    """Package a trained classifier in the format `load_classifier` reads."""
    if len(labels) != NUM_CLASSES:
        raise ValueError(f"Expected {NUM_CLASSES} labels, got {len(labels)}")
    out = Path(path)
    ensure_dir(out.parent)
    torch.save({
        "model_state": model.state_dict(),
        "config": resolve_model_config(model_cfg),
        "labels": [str(x) for x in labels],
    }, out)
    return out


def build_transform(m: Dict[str, Any]) -> transforms.Compose:
    norm = m["normalization"]
    mean, std = float(norm["mean"]), float(norm["std"])
    ch = m["input_channels"]
    steps: List[Any] = []
    if ch == 1:
        steps.append(transforms.Grayscale(num_output_channels=1))
    steps += [
        transforms.Resize(tuple(m["image_size"])),
        transforms.ToTensor(),
        transforms.Normalize((mean,) * ch, (std,) * ch),
    ]
    return transforms.Compose(steps)


class BinaryClassifier:
    """A loaded two-class model plus the preprocessing it was trained with."""

    def __init__(self, model: nn.Module, model_cfg: Dict[str, Any], labels: Sequence[str], device: torch.device):
        if len(labels) != NUM_CLASSES:
            raise ValueError(f"Expected {NUM_CLASSES} labels, got {len(labels)}")
        self.model = model.to(device).eval()
        self.cfg = model_cfg
        self.labels = [str(x) for x in labels]
        self.device = device
        self.transform = build_transform(model_cfg)

    @torch.no_grad()
    def predict(self, image: Image.Image) -> Prediction:
        rgb = image.convert("RGB")
        x = self.transform(rgb).unsqueeze(0).to(self.device)  # [1,C,H,W]
        logits = self.model(x)
        if logits.shape[-1] != NUM_CLASSES:
            raise ValueError(f"Model produced {logits.shape[-1]} outputs, expected {NUM_CLASSES}")
        probs = F.softmax(logits, dim=-1)[0]
        idx = int(torch.argmax(probs).item())
        return Prediction(self.labels[idx], (float(probs[0].item()), float(probs[1].item())))

    def predict_file(self, path: str | Path) -> Prediction:
        with Image.open(path) as im:
            return self.predict(im)


def load_classifier(model_path: str | Path, device: str = "auto") -> BinaryClassifier:
    ckpt = Path(model_path)
    if not ckpt.is_file():
        raise FileNotFoundError(f"Model not found: {ckpt}")
    dev = pick_device(device)
    blob = _load_checkpoint_any(ckpt, dev)

    if isinstance(blob, nn.Module):
        model_cfg = resolve_model_config(getattr(blob, "config", {}) or {})
        labels = list(getattr(blob, "labels", DEFAULT_LABELS))
        model = blob
    elif isinstance(blob, dict):
        model_cfg = resolve_model_config(blob.get("config") or {})
        labels = list(blob.get("labels") or DEFAULT_LABELS)
        model = build_classifier_from_cfg(model_cfg)
        model.load_state_dict(_extract_state_dict(blob))
    else:
        raise TypeError(f"Unsupported model artifact: {type(blob).__name__}")

    log.info("loaded %s on %s (labels=%s)", ckpt, dev, labels)
    return BinaryClassifier(model, model_cfg, labels, dev)


# ---- batch runner ----
def format_prediction(rel_path: str, prediction: Prediction) -> str:
    s0, s1 = prediction.scores
    return f"{rel_path} --> {prediction.label} ({s0:.2f} / {s1:.2f})"


def predict_directory(model_path: str | Path,
                      directory: str | Path,
                      pattern: str = "*.jpg",
                      device: str = "auto",
                      classifier: Optional[BinaryClassifier] = None) -> Iterator[Tuple[str, Prediction]]:
    """
    Yield (relative path, prediction) for every file matching `pattern` below
    `directory`, recursively; file names are matched case-insensitively.
    The model is loaded once, before the first file.
    """
    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"Directory not found: {root}")
    pat = pattern.lower()
    files = sorted(
        x for x in root.rglob("*")
        if x.is_file() and fnmatch.fnmatchcase(x.name.lower(), pat)
    )
    clf = classifier or load_classifier(model_path, device=device)
    for fp in files:
        yield relative_display(fp, root), clf.predict_file(fp)


__all__ = [
    "Prediction", "BinaryClassifier", "load_classifier", "save_checkpoint",
    "build_transform", "format_prediction", "predict_directory",
]
