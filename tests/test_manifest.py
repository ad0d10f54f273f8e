# tests/test_manifest.py
from __future__ import annotations
from pathlib import Path

import pytest

from imageprep.manifest import create_tsv, derive_label, manifest_path, read_manifest
from conftest import make_rgb


def test_manifest_rows_use_label_and_source(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    make_rgb(Path("root/catA/x.jpg"), (4, 4))
    make_rgb(Path("root/catB/y.jpg"), (4, 4))

    out = create_tsv("root")

    assert out == (tmp_path / "root.tsv").resolve()
    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "Label\tImageSource"
    assert sorted(lines[1:]) == ["catA\troot/catA/x.jpg", "catB\troot/catB/y.jpg"]


def test_manifest_filters_extensions(mixed_tree):
    out = create_tsv(mixed_tree, [".jpg", ".png"])
    rows = read_manifest(out)
    assert [label for label, _ in rows] == ["a", "b/deep"]


def test_derive_label_nested_and_root(tmp_path):
    root = tmp_path / "r"
    assert derive_label(root / "a" / "b" / "f.jpg", root) == "a/b"
    assert derive_label(root / "f.jpg", root) == ""
    assert derive_label(root / ".hidden" / "f.jpg", root) == ".hidden"


def test_manifest_path_is_sibling(tmp_path):
    assert manifest_path(tmp_path / "imgs (Grayscale)") == (tmp_path / "imgs (Grayscale).tsv").resolve()


def test_read_manifest_rejects_missing_header(tmp_path):
    p = tmp_path / "bad.tsv"
    p.write_text("cat\tx.jpg\n", encoding="utf-8")
    with pytest.raises(ValueError, match="header"):
        read_manifest(p)
