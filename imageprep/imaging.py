# imageprep/imaging.py
"""Pixel-level operations: resize, grayscale conversion and JPEG encoding."""
from __future__ import annotations

from pathlib import Path
from typing import List

import numpy as np
from PIL import Image

# ---------------- Resample registry ----------------
_RESAMPLE = {
    "nearest": Image.NEAREST,
    "bilinear": Image.BILINEAR,
    "bicubic": Image.BICUBIC,
    "lanczos": Image.LANCZOS,
}

# Luminance weights in hundredths: 0.30 R + 0.59 G + 0.11 B
_WEIGHTS = np.array([30, 59, 11], dtype=np.uint32)

JPEG_QUALITY = 100


def resample_filter(name: str) -> int:
    key = str(name).strip().lower()
    if key not in _RESAMPLE:
        raise ValueError(
            f"Unknown resample filter '{name}'. "
            f"Supported: {', '.join(sorted(_RESAMPLE))}"
        )
    return _RESAMPLE[key]


def open_image(path: str | Path) -> Image.Image:
    """Decode an image fully so the file handle is released on return."""
    with Image.open(path) as im:
        im.load()
    return im


# ---------------- Resizer ----------------
def resize_image(image: Image.Image, width: int, height: int, resample: str = "bicubic") -> Image.Image:
    """
    Stretch `image` edge to edge onto a `width` x `height` canvas.
    No crop and no letterboxing; the aspect ratio is not preserved.
    """
    width, height = int(width), int(height)
    if width <= 0 or height <= 0:
        raise ValueError(f"Target size must be positive, got {width}x{height}")
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    return image.resize((width, height), resample_filter(resample))


# ---------------- Grayscale ----------------
def luminance(rgb: np.ndarray) -> np.ndarray:
    """
    Per-pixel intensity round(0.3 R + 0.59 G + 0.11 B) for an [H, W, 3] array.

    Integer arithmetic with round-half-up, so (255, 0, 0) gives 77 and
    (255, 255, 255) gives exactly 255.
    """
    arr = np.asarray(rgb)
    if arr.ndim != 3 or arr.shape[2] < 3:
        raise ValueError(f"Expected an [H, W, 3] RGB array, got shape {arr.shape}")
    weighted = arr[..., :3].astype(np.uint32) @ _WEIGHTS
    gray = (weighted + 50) // 100
    return np.clip(gray, 0, 255).astype(np.uint8)


def to_grayscale8(image: Image.Image) -> Image.Image:
    """8-bit single-channel ('L') copy of `image`."""
    rgb = np.asarray(image.convert("RGB"))
    return Image.fromarray(luminance(rgb))


def grayscale_palette() -> List[int]:
    """Flat 768-entry palette mapping index i to (i, i, i)."""
    return [c for i in range(256) for c in (i, i, i)]


def to_indexed_grayscale(image: Image.Image) -> Image.Image:
    """Palette ('P') grayscale image for encoders without native single-channel support."""
    gray = to_grayscale8(image)
    indexed = Image.frombytes("P", gray.size, gray.tobytes())
    indexed.putpalette(grayscale_palette())
    return indexed


def has_gray_palette(image: Image.Image) -> bool:
    """True for a 'P' image whose palette entries all have R == G == B."""
    pal = image.getpalette() if image.mode == "P" else None
    if not pal:
        return False
    return all(pal[i] == pal[i + 1] == pal[i + 2] for i in range(0, len(pal) - 2, 3))


# ---------------- Encoder ----------------
_FORMAT_ALIASES = {"jpg": "JPEG", "jpe": "JPEG", "tif": "TIFF"}


def get_encoder(format_id: str) -> str:
    """Map 'jpeg', 'JPG', '.jpg', 'png', ... to the name of a registered Pillow encoder."""
    key = str(format_id).strip().lstrip(".").lower()
    name = _FORMAT_ALIASES.get(key, key.upper())
    Image.init()
    if name not in Image.SAVE:
        raise KeyError(f"No encoder registered for format '{format_id}'")
    return name


def save_as_jpeg(image: Image.Image, path: str | Path, quality: int = JPEG_QUALITY) -> None:
    if image.mode == "P" and has_gray_palette(image):
        image = image.convert("L")
    elif image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    image.save(path, format=get_encoder("jpeg"), quality=int(quality))


__all__ = [
    "resample_filter", "open_image", "resize_image",
    "luminance", "to_grayscale8", "grayscale_palette", "to_indexed_grayscale", "has_gray_palette",
    "get_encoder", "save_as_jpeg", "JPEG_QUALITY",
]
