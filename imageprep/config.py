# imageprep/config.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Optional
import yaml

_RESAMPLE_NAMES = ("nearest", "bilinear", "bicubic", "lanczos")
_DEFAULT_IMAGE_EXTS = [".jpg", ".jpeg", ".png", ".bmp", ".gif", ".tif", ".tiff"]


# ---------- Defaults ----------
def default_config() -> Dict[str, Any]:
    return {
        "images": {
            "extensions": [".jpg"],   # files touched by lowres/gray
            "bmp_extension": ".bmp",
        },
        "lowres": {
            "width": 320,
            "height": 240,
            "resample": "bicubic",
            "suffix": " (Low Resolution)",
        },
        "grayscale": {
            "suffix": " (Grayscale)",
        },
        "jpeg": {
            "quality": 100,
        },
        "manifest": {
            "extensions": list(_DEFAULT_IMAGE_EXTS),
        },
        "rename": {
            "name_length": 8,
            "max_attempts": 100,
        },
        "classify": {
            "pattern": "*.jpg",
            "device": "auto",
        },
    }


# ---------- IO ----------
def load_config(path: str | Path) -> Dict[str, Any]:
    """Read YAML config from disk. If the file does not exist, raise FileNotFoundError."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {p}")
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {p}")
    # merge shallowly with defaults so partial configs work
    cfg = default_config()
    for k, v in data.items():
        if isinstance(v, dict) and isinstance(cfg.get(k), dict):
            cfg[k].update(v)
        else:
            cfg[k] = v
    return cfg


def load_or_default(path: Optional[str | Path]) -> Dict[str, Any]:
    """Load `path` when given, otherwise start from the defaults."""
    cfg = load_config(path) if path else default_config()
    return resolve_config(cfg)


def save_config(cfg: Dict[str, Any], path: str | Path) -> None:
    """Write YAML config to disk (pretty)."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        yaml.safe_dump(cfg, f, sort_keys=False, allow_unicode=True)


# ---------- Validation / Normalization ----------
def _norm_exts(exts) -> list:
    out = []
    for e in exts or []:
        e = str(e).strip().lower()
        if not e:
            continue
        out.append(e if e.startswith(".") else "." + e)
    return out


def resolve_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and normalize config in-place; return cfg."""
    for sect in ("images", "lowres", "grayscale", "jpeg", "manifest", "rename", "classify"):
        cfg.setdefault(sect, {})
    defaults = default_config()

    im = cfg["images"]
    im["extensions"] = _norm_exts(im.get("extensions") or defaults["images"]["extensions"])
    im["bmp_extension"] = _norm_exts([im.get("bmp_extension", ".bmp")])[0]

    lr = cfg["lowres"]
    lr["width"] = int(lr.get("width", 320))
    lr["height"] = int(lr.get("height", 240))
    if lr["width"] <= 0 or lr["height"] <= 0:
        raise ValueError("lowres.width and lowres.height must be > 0")
    lr["resample"] = str(lr.get("resample", "bicubic")).lower()
    if lr["resample"] not in _RESAMPLE_NAMES:
        raise ValueError(f"lowres.resample must be one of: {', '.join(_RESAMPLE_NAMES)}")
    lr.setdefault("suffix", defaults["lowres"]["suffix"])

    cfg["grayscale"].setdefault("suffix", defaults["grayscale"]["suffix"])
    if cfg["grayscale"]["suffix"] == lr["suffix"]:
        raise ValueError("grayscale.suffix and lowres.suffix must differ")

    j = cfg["jpeg"]
    j["quality"] = int(j.get("quality", 100))
    if not (1 <= j["quality"] <= 100):
        raise ValueError("jpeg.quality must be in [1, 100]")

    m = cfg["manifest"]
    m["extensions"] = _norm_exts(m.get("extensions") or _DEFAULT_IMAGE_EXTS)

    r = cfg["rename"]
    r["name_length"] = int(r.get("name_length", 8))
    r["max_attempts"] = int(r.get("max_attempts", 100))
    if r["name_length"] < 1:
        raise ValueError("rename.name_length must be ≥ 1")
    if r["max_attempts"] < 1:
        raise ValueError("rename.max_attempts must be ≥ 1")

    c = cfg["classify"]
    c.setdefault("pattern", "*.jpg")
    c["device"] = str(c.get("device", "auto")).lower()

    return cfg
