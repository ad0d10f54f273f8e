# imageprep/manifest.py
"""Tab-separated dataset manifests: one `Label<TAB>ImageSource` row per image."""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .dataset import enumerate_files

log = logging.getLogger(__name__)

HEADER = ("Label", "ImageSource")


def derive_label(file: str | Path, root: str | Path) -> str:
    """Relative directory of `file` under `root`, '/'-separated, without outer separators."""
    rel = Path(file).parent.relative_to(root)
    if rel == Path("."):
        return ""
    return rel.as_posix().strip("/")


def manifest_path(root: str | Path) -> Path:
    """`<parent>/<name>.tsv` for the tree rooted at `root`."""
    p = Path(root)
    name = p.resolve().name if p.name in ("", ".", "..") else p.name
    return p.resolve().parent / f"{name}.tsv"


def create_tsv(root: str | Path, extensions: Optional[Iterable[str]] = None) -> Path:
    out = manifest_path(root)
    files = enumerate_files(root, extensions)
    with out.open("w", encoding="utf-8", newline="") as f:
        w = csv.writer(f, delimiter="\t", lineterminator="\n")
        w.writerow(HEADER)
        for fp in files:
            w.writerow([derive_label(fp, root), str(fp)])
    log.info("wrote %s (%d rows)", out, len(files))
    return out


def read_manifest(path: str | Path) -> List[Tuple[str, str]]:
    with Path(path).open("r", encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f, delimiter="\t"))
    if not rows or tuple(rows[0]) != HEADER:
        raise ValueError(f"Not a manifest (missing '{HEADER[0]}\\t{HEADER[1]}' header): {path}")
    out = []
    for i, row in enumerate(rows[1:], start=2):
        if len(row) != 2:
            raise ValueError(f"{path}:{i}: expected 2 columns, got {len(row)}")
        out.append((row[0], row[1]))
    return out


__all__ = ["HEADER", "derive_label", "manifest_path", "create_tsv", "read_manifest"]
