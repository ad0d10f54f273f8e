# imageprep/cli.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from . import predict as predictmod
from .config import load_or_default
from .preprocess import PreprocessOptions, run_preprocess
from .utils import setup_logging

preprocess_app = typer.Typer(
    add_completion=False,
    help="Prepare an image dataset tree: rename, convert, downscale, grayscale and write TSV manifests.",
)
classify_app = typer.Typer(
    add_completion=False,
    help="Run a binary image classifier over every image of a test set.",
)


@preprocess_app.command()
def preprocess(
        directory: Path = typer.Argument(..., exists=True, file_okay=False, dir_okay=True,
                                         help="Folder containing the images"),
        print_files: bool = typer.Option(False, "-print-files", "--print-files", help="Print every file found"),
        rename: bool = typer.Option(False, "-rename", "--rename", help="Rename every file to a random name"),
        bmp_to_jpg: bool = typer.Option(False, "-bmp-to-jpg", "--bmp-to-jpg",
                                        help="Write a JPEG copy of every BMP (BMPs are kept)"),
        lowres: bool = typer.Option(False, "-lowres", "--lowres",
                                    help="Mirror the tree into '<dir> (Low Resolution)' at a fixed size"),
        gray: bool = typer.Option(False, "-gray", "--gray",
                                  help="Mirror the low-res tree (or the source) into '<dir> (Grayscale)' as 8-bit grayscale"),
        width: Optional[int] = typer.Option(None, min=1, help="Low-res width (default 320)"),
        height: Optional[int] = typer.Option(None, min=1, help="Low-res height (default 240)"),
        quality: Optional[int] = typer.Option(None, min=1, max=100, help="JPEG quality (default 100)"),
        keep_going: bool = typer.Option(False, "--keep-going", help="Log failing files and continue"),
        progress: bool = typer.Option(True, "--progress/--no-progress"),
        verbose: bool = typer.Option(False, "--verbose", "-v"),
        config: Optional[str] = typer.Option(None, help="Optional YAML config"),
):
    """Preprocess the images below DIRECTORY."""
    setup_logging(verbose)
    cfg = load_or_default(config)
    if width is not None:   cfg["lowres"]["width"] = int(width)
    if height is not None:  cfg["lowres"]["height"] = int(height)
    if quality is not None: cfg["jpeg"]["quality"] = int(quality)

    typer.echo(f"Directory = {directory}")
    opts = PreprocessOptions(
        print_files=print_files,
        rename=rename,
        bmp_to_jpg=bmp_to_jpg,
        lowres=lowres,
        gray=gray,
        keep_going=keep_going,
        progress=progress,
    )
    res = run_preprocess(directory, opts, cfg, echo=typer.echo)
    for m in res.manifests:
        typer.echo(f"Manifest: {m}")

    if res.failures:
        for err in res.failures:
            for fp, e in err.failures:
                typer.echo(f"ERR [{err.step}] {fp}: {e}", err=True)
        raise typer.Exit(code=1)


@classify_app.command()
def classify(
        model_path: Path = typer.Argument(..., exists=True, file_okay=True, dir_okay=False,
                                          help="Path to the model checkpoint"),
        testset_directory: Path = typer.Argument(..., exists=True, file_okay=False, dir_okay=True,
                                                 help="Folder containing the test set images"),
        device: Optional[str] = typer.Option(None, help="auto|cpu|cuda|mps"),
        pattern: Optional[str] = typer.Option(None, help="Glob of the files to classify (default *.jpg)"),
        verbose: bool = typer.Option(False, "--verbose", "-v"),
        config: Optional[str] = typer.Option(None, help="Optional YAML config"),
):
    """Print `<file> --> <label> (<score0> / <score1>)` for each test image."""
    setup_logging(verbose)
    cfg = load_or_default(config)
    c = cfg["classify"]
    results = predictmod.predict_directory(
        model_path,
        testset_directory,
        pattern=pattern or c["pattern"],
        device=device or c["device"],
    )
    for rel, pred in results:
        typer.echo(predictmod.format_prediction(rel, pred))


def preprocess_main() -> None:
    preprocess_app()


def classify_main() -> None:
    classify_app()


if __name__ == "__main__":
    preprocess_app()
