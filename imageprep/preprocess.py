# imageprep/preprocess.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple

from . import dataset
from .manifest import create_tsv

log = logging.getLogger(__name__)


@dataclass
class PreprocessOptions:
    print_files: bool = False
    rename: bool = False
    bmp_to_jpg: bool = False
    lowres: bool = False
    gray: bool = False
    keep_going: bool = False
    progress: bool = False


@dataclass
class PreprocessResult:
    low_res_dir: Path
    grayscale_dir: Path
    manifests: List[Path]
    failures: List[dataset.BatchError]


def sibling_dirs(directory: str | Path, cfg: Dict[str, Any]) -> Tuple[Path, Path]:
    """(`<dir> (Low Resolution)`, `<dir> (Grayscale)`) next to `directory`."""
    d = Path(directory)
    if d.name in ("", ".", ".."):
        d = d.resolve()
    return (
        d.parent / f"{d.name}{cfg['lowres']['suffix']}",
        d.parent / f"{d.name}{cfg['grayscale']['suffix']}",
    )


def run_preprocess(directory: str | Path,
                   options: PreprocessOptions,
                   cfg: Dict[str, Any],
                   echo: Callable[[str], None] = print) -> PreprocessResult:
    """
    Run the enabled steps in order: print, rename, BMP->JPEG, low resolution,
    grayscale, then write a manifest for every tree that exists.

    Without `keep_going` the first failing file aborts the run. With it, each
    step finishes its batch and the collected BatchErrors come back in the result.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Directory [{directory}] doesn't exist!")

    low_res_dir, grayscale_dir = sibling_dirs(directory, cfg)
    quality = cfg["jpeg"]["quality"]
    exts = cfg["images"]["extensions"]
    failures: List[dataset.BatchError] = []

    def _step(fn, *args, **kwargs) -> None:
        try:
            fn(*args, keep_going=options.keep_going, progress=options.progress, **kwargs)
        except dataset.BatchError as e:
            failures.append(e)

    if options.print_files:
        echo("Printing file names...")
        dataset.print_file_names(directory, echo=echo)

    if options.rename:
        echo("Renaming files...")
        dataset.rename_files(
            directory,
            name_length=cfg["rename"]["name_length"],
            max_attempts=cfg["rename"]["max_attempts"],
        )

    if options.bmp_to_jpg:
        echo("Converting BMP to JPEG...")
        _step(dataset.bmp_to_jpeg, directory, quality=quality,
              bmp_extension=cfg["images"]["bmp_extension"])

    if options.lowres:
        echo("Lowering images' resolution...")
        lr = cfg["lowres"]
        _step(dataset.create_low_resolution_images, directory, low_res_dir,
              width=lr["width"], height=lr["height"], resample=lr["resample"],
              quality=quality, extensions=exts)

    if options.gray:
        echo("Converting images to grayscale8bpp...")
        source = low_res_dir if low_res_dir.is_dir() else directory
        log.debug("grayscale source tree: %s", source)
        _step(dataset.convert_to_grayscale, source, grayscale_dir,
              quality=quality, extensions=exts)

    manifest_exts = cfg["manifest"]["extensions"]
    manifests = [create_tsv(directory, manifest_exts)]
    for tree in (low_res_dir, grayscale_dir):
        if tree.is_dir():
            manifests.append(create_tsv(tree, manifest_exts))

    return PreprocessResult(low_res_dir, grayscale_dir, manifests, failures)
