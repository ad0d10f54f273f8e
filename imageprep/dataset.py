# imageprep/dataset.py
"""Directory-tree operations: walk, rename, BMP->JPEG, low-res and grayscale mirrors."""
from __future__ import annotations

import logging
import os
import random
import string
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

from tqdm import tqdm

from .imaging import JPEG_QUALITY, open_image, resize_image, save_as_jpeg, to_grayscale8
from .utils import ensure_dir, relative_display

log = logging.getLogger(__name__)

_NAME_ALPHABET = string.ascii_lowercase + string.digits


# ---- discovery ----
def enumerate_files(root: str | Path, extensions: Optional[Iterable[str]] = None) -> List[Path]:
    """All files below `root`, recursively, sorted; optionally filtered by extension."""
    p = Path(root)
    if not p.is_dir():
        raise FileNotFoundError(f"Directory not found: {p}")
    exts = {e.lower() for e in extensions} if extensions is not None else None
    return sorted(
        x for x in p.rglob("*")
        if x.is_file() and (exts is None or x.suffix.lower() in exts)
    )


def print_file_names(root: str | Path, echo: Callable[[str], None] = print) -> List[Path]:
    files = enumerate_files(root)
    for f in files:
        echo(f"File: {relative_display(f, root)}")
    return files


def mirror_path(file: str | Path, src_root: str | Path, dst_root: str | Path) -> Path:
    """Destination of `file` in the tree rooted at `dst_root`; parent dirs are created."""
    out = Path(dst_root) / Path(file).relative_to(src_root)
    ensure_dir(out.parent)
    return out


# ---- per-file loop ----
class BatchError(RuntimeError):
    """Raised after a keep-going batch in which some files failed."""

    def __init__(self, step: str, failures: Sequence[Tuple[Path, BaseException]]):
        self.step = step
        self.failures = list(failures)
        super().__init__(f"{step}: {len(self.failures)} file(s) failed")


def _run_batch(files: Sequence[Path],
               fn: Callable[[Path], None],
               desc: str,
               keep_going: bool = False,
               progress: bool = False) -> List[Tuple[Path, BaseException]]:
    failures: List[Tuple[Path, BaseException]] = []
    for fp in tqdm(files, desc=desc, unit="img", disable=not progress):
        if not keep_going:
            fn(fp)
            continue
        try:
            fn(fp)
        except (OSError, ValueError) as e:
            log.warning("%s failed on %s: %s", desc, fp, e)
            failures.append((fp, e))
    return failures


# ---- rename ----
def _random_stem(rng: random.Random, length: int) -> str:
    return "".join(rng.choice(_NAME_ALPHABET) for _ in range(length))


def rename_files(root: str | Path,
                 name_length: int = 8,
                 max_attempts: int = 100,
                 rng: Optional[random.Random] = None) -> List[Tuple[Path, Path]]:
    """
    Give every file below `root` a random name, keeping its directory and extension.

    A candidate name is rejected when a file of that name already exists or when
    it was issued earlier in this call; after `max_attempts` rejections for one
    file a RuntimeError is raised.
    """
    rng = rng or random.SystemRandom()
    files = enumerate_files(root)
    issued: Set[Path] = set()
    moves: List[Tuple[Path, Path]] = []

    for fp in files:
        for _ in range(max_attempts):
            target = fp.with_name(_random_stem(rng, name_length) + fp.suffix)
            if target not in issued and not target.exists():
                break
        else:
            raise RuntimeError(f"Could not find a free name for {fp} after {max_attempts} attempts")
        issued.add(target)
        os.rename(fp, target)
        log.debug("renamed %s -> %s", fp, target.name)
        moves.append((fp, target))
    return moves


# ---- BMP -> JPEG ----
def bmp_to_jpeg(root: str | Path,
                quality: int = JPEG_QUALITY,
                bmp_extension: str = ".bmp",
                keep_going: bool = False,
                progress: bool = False) -> List[Path]:
    """Write a .jpg beside every BMP that has none yet. BMP files are kept."""
    written: List[Path] = []

    def _convert(fp: Path) -> None:
        target = fp.with_suffix(".jpg")
        if target.exists():
            log.debug("skip %s, %s exists", fp, target.name)
            return
        save_as_jpeg(open_image(fp), target, quality=quality)
        written.append(target)

    files = enumerate_files(root, [bmp_extension])
    failures = _run_batch(files, _convert, "BMP to JPEG", keep_going, progress)
    if failures:
        raise BatchError("BMP to JPEG", failures)
    return written


# ---- low resolution / grayscale mirrors ----
def create_low_resolution_images(src: str | Path,
                                 dst: str | Path,
                                 width: int = 320,
                                 height: int = 240,
                                 resample: str = "bicubic",
                                 quality: int = JPEG_QUALITY,
                                 extensions: Iterable[str] = (".jpg",),
                                 keep_going: bool = False,
                                 progress: bool = False) -> List[Path]:
    written: List[Path] = []

    def _resize(fp: Path) -> None:
        out = mirror_path(fp, src, dst)
        save_as_jpeg(resize_image(open_image(fp), width, height, resample), out, quality=quality)
        written.append(out)

    ensure_dir(dst)
    files = enumerate_files(src, extensions)
    failures = _run_batch(files, _resize, "Low resolution", keep_going, progress)
    if failures:
        raise BatchError("Low resolution", failures)
    return written


def convert_to_grayscale(src: str | Path,
                         dst: str | Path,
                         quality: int = JPEG_QUALITY,
                         extensions: Iterable[str] = (".jpg",),
                         keep_going: bool = False,
                         progress: bool = False) -> List[Path]:
    written: List[Path] = []

    def _gray(fp: Path) -> None:
        out = mirror_path(fp, src, dst)
        save_as_jpeg(to_grayscale8(open_image(fp)), out, quality=quality)
        written.append(out)

    ensure_dir(dst)
    files = enumerate_files(src, extensions)
    failures = _run_batch(files, _gray, "Grayscale", keep_going, progress)
    if failures:
        raise BatchError("Grayscale", failures)
    return written


__all__ = [
    "enumerate_files", "print_file_names", "mirror_path", "BatchError",
    "rename_files", "bmp_to_jpeg", "create_low_resolution_images", "convert_to_grayscale",
]
