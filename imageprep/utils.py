# imageprep/utils.py
from __future__ import annotations
from pathlib import Path
import logging
import os

import torch

LOG_FORMAT = "%(asctime)s - %(name)-22s - %(levelname)-8s - %(message)s"


# ------------ filesystem helpers ------------
def ensure_dir(path: str | os.PathLike) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def relative_display(path: str | os.PathLike, root: str | os.PathLike) -> str:
    """Path of `path` below `root`, '/'-separated, for printing."""
    return Path(path).relative_to(root).as_posix()


# ------------ logging ------------
def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger once per CLI invocation."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=True,
    )


# ------------ device ------------
def pick_device(requested: str = "auto") -> torch.device:
    """
    Choose a torch.device according to:
      - 'auto'  : cuda > mps > cpu
      - 'cuda'  : cuda if available else cpu
      - 'mps'   : mps  if available else cpu
      - 'cpu'   : cpu
    """
    r = (requested or "auto").lower()

    if r == "cpu":
        return torch.device("cpu")

    if r == "cuda":
        return torch.device("cuda") if torch.cuda.is_available() else torch.device("cpu")

    mps_ok = getattr(torch.backends, "mps", None) is not None and torch.backends.mps.is_available()

    if r == "mps":
        return torch.device("mps") if mps_ok else torch.device("cpu")

    # auto
    if torch.cuda.is_available():
        return torch.device("cuda")
    if mps_ok:
        return torch.device("mps")
    return torch.device("cpu")


__all__ = [
    "ensure_dir", "relative_display",
    "setup_logging", "pick_device",
]
