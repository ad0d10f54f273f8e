# tests/test_dataset.py
from __future__ import annotations
import hashlib
import random
from pathlib import Path

from PIL import Image
import pytest

from imageprep import dataset
from conftest import make_rgb


def _digests(paths):
    return sorted(hashlib.sha256(p.read_bytes()).hexdigest() for p in paths)


def test_enumerate_files_filters_and_sorts(mixed_tree):
    all_files = dataset.enumerate_files(mixed_tree)
    assert [p.relative_to(mixed_tree).as_posix() for p in all_files] == [
        "a/x.jpg", "a/y.bmp", "b/deep/z.png",
    ]
    only_bmp = dataset.enumerate_files(mixed_tree, [".BMP"])
    assert [p.name for p in only_bmp] == ["y.bmp"]


def test_enumerate_files_missing_dir(tmp_path):
    with pytest.raises(FileNotFoundError):
        dataset.enumerate_files(tmp_path / "nope")


def test_print_file_names(mixed_tree):
    lines = []
    dataset.print_file_names(mixed_tree, echo=lines.append)
    assert lines == ["File: a/x.jpg", "File: a/y.bmp", "File: b/deep/z.png"]


def test_rename_preserves_extensions_and_contents(mixed_tree):
    before = dataset.enumerate_files(mixed_tree)
    exts_before = sorted(p.suffix for p in before)
    digests_before = _digests(before)

    moves = dataset.rename_files(mixed_tree)

    after = dataset.enumerate_files(mixed_tree)
    assert len(moves) == len(before) == len(after)
    assert sorted(p.suffix for p in after) == exts_before
    assert _digests(after) == digests_before
    assert len({p.name for p in after}) == len(after)
    for old, new in moves:
        assert old.parent == new.parent
        assert not old.exists() or old == new
        assert len(new.stem) == 8


class _ScriptedRng(random.Random):
    """Yields the characters of `script` in order from choice()."""

    def __init__(self, script: str):
        super().__init__(0)
        self._it = iter(script)

    def choice(self, seq):
        return next(self._it)


def test_rename_retries_on_collision(tmp_path):
    root = tmp_path / "r"
    make_rgb(root / "a.jpg", (4, 4), seed=1)
    make_rgb(root / "b.jpg", (4, 4), seed=2)
    make_rgb(root / "zz.jpg", (4, 4), seed=3)   # existing name is never issued
    # first file: "zz" (exists) then "aa"; second: "aa" (issued) then "bb"; third: "cc"
    moves = dataset.rename_files(root, name_length=2, rng=_ScriptedRng("zzaaaabbcc"))
    assert [new.name for _, new in moves] == ["aa.jpg", "bb.jpg", "cc.jpg"]
    assert sorted(p.name for p in root.iterdir()) == ["aa.jpg", "bb.jpg", "cc.jpg"]


def test_rename_gives_up_after_max_attempts(tmp_path):
    root = tmp_path / "r"
    make_rgb(root / "a.jpg", (4, 4))
    make_rgb(root / "xx.jpg", (4, 4), seed=9)
    with pytest.raises(RuntimeError, match="free name"):
        dataset.rename_files(root, name_length=2, max_attempts=3, rng=_ScriptedRng("xx" * 3))


def test_bmp_to_jpeg_keeps_bmp_and_dimensions(mixed_tree):
    written = dataset.bmp_to_jpeg(mixed_tree)
    assert written == [mixed_tree / "a" / "y.jpg"]
    assert (mixed_tree / "a" / "y.bmp").exists()
    with Image.open(written[0]) as im:
        assert im.format == "JPEG"
        assert im.size == (33, 21)


def test_bmp_to_jpeg_skips_existing_jpeg(mixed_tree):
    existing = mixed_tree / "a" / "y.jpg"
    existing.write_bytes(b"keep me")
    assert dataset.bmp_to_jpeg(mixed_tree) == []
    assert existing.read_bytes() == b"keep me"


def test_low_resolution_mirrors_tree(imgs_tree, tmp_path):
    dst = tmp_path / "imgs (Low Resolution)"
    written = dataset.create_low_resolution_images(imgs_tree, dst, 320, 240)
    assert sorted(p.relative_to(dst).as_posix() for p in written) == ["cat/1.jpg", "dog/2.jpg"]
    for p in written:
        with Image.open(p) as im:
            assert im.size == (320, 240)


def test_low_resolution_only_touches_jpg(mixed_tree, tmp_path):
    dst = tmp_path / "out"
    written = dataset.create_low_resolution_images(mixed_tree, dst, 8, 6)
    assert [p.relative_to(dst).as_posix() for p in written] == ["a/x.jpg"]


def test_grayscale_is_single_channel(imgs_tree, tmp_path):
    dst = tmp_path / "gray"
    written = dataset.convert_to_grayscale(imgs_tree, dst)
    assert len(written) == 2
    with Image.open(dst / "dog" / "2.jpg") as im:
        assert im.mode == "L"
        assert im.size == (50, 50)


def test_keep_going_collects_failures(imgs_tree, tmp_path):
    (imgs_tree / "cat" / "broken.jpg").write_bytes(b"not a jpeg")
    dst = tmp_path / "gray"
    with pytest.raises(dataset.BatchError) as exc:
        dataset.convert_to_grayscale(imgs_tree, dst, keep_going=True)
    assert [fp.name for fp, _ in exc.value.failures] == ["broken.jpg"]
    # the good files were still processed
    assert (dst / "cat" / "1.jpg").exists()
    assert (dst / "dog" / "2.jpg").exists()


def test_fail_fast_without_keep_going(imgs_tree, tmp_path):
    (imgs_tree / "cat" / "0broken.jpg").write_bytes(b"not a jpeg")
    with pytest.raises(OSError):
        dataset.convert_to_grayscale(imgs_tree, tmp_path / "gray")


def test_mirror_path_creates_parents(tmp_path):
    src = tmp_path / "src"
    out = dataset.mirror_path(src / "x" / "y" / "f.jpg", src, tmp_path / "dst")
    assert out == tmp_path / "dst" / "x" / "y" / "f.jpg"
    assert out.parent.is_dir()


def test_bmp_to_jpeg_keeps_colour_of_indexed_bmp(tmp_path):
    root = tmp_path / "pal"
    root.mkdir()
    im = Image.new("P", (8, 8), 1)
    im.putpalette([0, 0, 0, 255, 0, 0] + [0] * 762)
    im.save(root / "red.bmp", format="BMP")
    with Image.open(root / "red.bmp") as decoded:
        assert decoded.mode == "P"

    [out] = dataset.bmp_to_jpeg(root)

    with Image.open(out) as back:
        assert back.mode == "RGB"
        r, g, b = back.getpixel((4, 4))
    assert r > 240 and g < 16 and b < 16
