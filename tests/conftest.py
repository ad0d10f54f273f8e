# tests/conftest.py
from __future__ import annotations
from pathlib import Path

import numpy as np
from PIL import Image
import pytest


def make_rgb(path: Path, size=(100, 100), seed: int = 0, fmt: str | None = None) -> Path:
    """Write a random RGB image of `size` (width, height) to `path`."""
    rng = np.random.default_rng(seed)
    w, h = size
    arr = rng.integers(0, 256, size=(h, w, 3), dtype=np.uint8)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(arr).save(path, format=fmt)
    return path


@pytest.fixture
def imgs_tree(tmp_path) -> Path:
    """
    imgs/cat/1.jpg (100x100) and imgs/dog/2.jpg (50x50), RGB.
    """
    root = tmp_path / "imgs"
    make_rgb(root / "cat" / "1.jpg", (100, 100), seed=1)
    make_rgb(root / "dog" / "2.jpg", (50, 50), seed=2)
    return root


@pytest.fixture
def mixed_tree(tmp_path) -> Path:
    """A tree with JPEG, BMP and a nested label folder."""
    root = tmp_path / "mixed"
    make_rgb(root / "a" / "x.jpg", (40, 30), seed=3)
    make_rgb(root / "a" / "y.bmp", (33, 21), seed=4, fmt="BMP")
    make_rgb(root / "b" / "deep" / "z.png", (20, 20), seed=5)
    return root
