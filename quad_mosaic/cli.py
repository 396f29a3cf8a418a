"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import numpy as np
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from quad_mosaic.config import MosaicConfig
from quad_mosaic.engine import MosaicEngine
from quad_mosaic.errors import MosaicError
from quad_mosaic.image_io import (
    load_image,
    load_palette,
    make_comparison_grid,
    mosaic_output_path,
    save_mosaic,
)
from quad_mosaic.palette import Palette

app = typer.Typer(
    name="quad-mosaic",
    help="Rebuild a photo out of a fixed library of reference tiles.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _collect_images(folder: Path, extensions: frozenset[str]) -> list[Path]:
    if not folder.exists():
        return []
    return sorted(
        f for f in folder.iterdir()
        if f.is_file() and f.suffix.lower() in extensions
    )


def _quality_metric(target: np.ndarray, mosaic: np.ndarray) -> float:
    t = target[..., :3].reshape(-1, 3).astype(np.float64)
    m = mosaic[..., :3].reshape(-1, 3).astype(np.float64)
    return float(np.mean(np.sqrt(np.sum((t - m) ** 2, axis=1))))


def _render(
    engine: MosaicEngine,
    palette: Palette,
    photo: Path,
    output: Path,
    comparison: bool,
) -> None:
    """Compose, save and report one photo."""
    t_total = time.perf_counter()
    target = load_image(photo)
    mosaic = engine.compose(target, palette)
    save_mosaic(mosaic, output)

    if comparison:
        comp_path = output.with_name(f"{photo.stem}_comparison{output.suffix}")
        make_comparison_grid(target, mosaic, comp_path)

    h, w = target.shape[:2]
    err = _quality_metric(target, mosaic)
    elapsed = time.perf_counter() - t_total
    console.print(
        f"  [green]✓[/green] {output.name}  "
        f"[dim]{w}x{h}  error={err:.1f}  time={elapsed:.1f}s[/dim]"
    )


# Defaults come from MosaicConfig - single source of truth
_DEFAULTS = MosaicConfig()


# -- batch command -----------------------------------------------------

@app.command()
def batch(
    input_dir: Path = typer.Option(
        _DEFAULTS.input_dir, "--input", "-i", help="Folder with source photos",
    ),
    output_dir: Path = typer.Option(
        _DEFAULTS.output_dir, "--output", "-o", help="Results folder",
    ),
    tile_dir: Path = typer.Option(
        _DEFAULTS.tile_dir, "--tiles", "-t", help="Folder with reference tiles",
    ),
    prefix: str = typer.Option(
        _DEFAULTS.tile_prefix, "--prefix", help="Tiles are named <prefix><n>.<ext>",
    ),
    threshold: int = typer.Option(
        _DEFAULTS.leaf_threshold, "--threshold",
        help="Stop splitting once width OR height is below this",
    ),
    color_space: str = typer.Option(
        _DEFAULTS.color_space, "--color-space", help="'rgb' or 'lab'",
    ),
    workers: int = typer.Option(
        _DEFAULTS.workers, "--workers", "-w", help="Threads for the top-level quadrants",
    ),
    comparison: bool = typer.Option(
        _DEFAULTS.save_comparison, "--comparison/--no-comparison",
        help="Save an Original | Mosaic comparison image",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Process all photos in INPUT_DIR and write results to OUTPUT_DIR."""
    _setup_logging(verbose)

    try:
        cfg = MosaicConfig(
            leaf_threshold=threshold,
            color_space=color_space,
            workers=workers,
            tile_prefix=prefix,
            tile_dir=tile_dir,
            save_comparison=comparison,
            input_dir=input_dir,
            output_dir=output_dir,
        )
        engine = MosaicEngine(cfg)
    except ValueError as err:
        console.print(f"[red]{err}[/red]")
        raise typer.Exit(2) from err

    images = _collect_images(input_dir, cfg.SUPPORTED_EXTENSIONS)
    if not images:
        console.print(f"\n[yellow]No images found in {input_dir}/[/yellow]")
        console.print("Place .jpg / .png / ... files there and re-run.\n")
        raise typer.Exit(0)

    # One palette for the whole batch
    palette = load_palette(cfg.tile_dir, cfg.tile_prefix, cfg.color_space)

    console.print(Panel.fit(
        f"[bold]QUAD MOSAIC[/bold]\n"
        f"Tiles: {len(palette)} from {cfg.tile_dir}  |  Colour space: {cfg.color_space}\n"
        f"Threshold: {cfg.leaf_threshold}  |  Workers: {cfg.workers}  |  "
        f"Images: {len(images)}",
        border_style="cyan",
    ))

    output_dir.mkdir(parents=True, exist_ok=True)
    for idx, img_path in enumerate(images, 1):
        console.rule(f"[bold cyan][{idx}/{len(images)}] {img_path.name}[/bold cyan]")
        output = mosaic_output_path(img_path, output_dir, cfg.output_format)
        try:
            _render(engine, palette, img_path, output, cfg.save_comparison)
        except MosaicError as err:
            console.print(f"[red]{img_path.name}: {err}[/red]")
            raise typer.Exit(1) from err

    console.print(Panel.fit(
        f"[bold green]ALL DONE[/bold green] - results in [bold]{output_dir}/[/bold]",
        border_style="green",
    ))


# -- single-image command ----------------------------------------------

@app.command()
def single(
    photo: Path = typer.Argument(..., help="Path to the source photo"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Defaults to <output-dir>/<stem>_mosaic.png",
    ),
    tile_dir: Path = typer.Option(_DEFAULTS.tile_dir, "--tiles", "-t"),
    prefix: str = typer.Option(_DEFAULTS.tile_prefix, "--prefix"),
    threshold: int = typer.Option(_DEFAULTS.leaf_threshold, "--threshold"),
    color_space: str = typer.Option(_DEFAULTS.color_space, "--color-space"),
    workers: int = typer.Option(_DEFAULTS.workers, "--workers", "-w"),
    comparison: bool = typer.Option(
        _DEFAULTS.save_comparison, "--comparison/--no-comparison",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Process a single photo."""
    _setup_logging(verbose)

    try:
        cfg = MosaicConfig(
            leaf_threshold=threshold,
            color_space=color_space,
            workers=workers,
            tile_prefix=prefix,
            tile_dir=tile_dir,
            save_comparison=comparison,
        )
        engine = MosaicEngine(cfg)
    except ValueError as err:
        console.print(f"[red]{err}[/red]")
        raise typer.Exit(2) from err

    if output is None:
        output = mosaic_output_path(photo, cfg.output_dir, cfg.output_format)

    palette = load_palette(cfg.tile_dir, cfg.tile_prefix, cfg.color_space)
    try:
        _render(engine, palette, photo, output, cfg.save_comparison)
    except MosaicError as err:
        console.print(f"[red]{err}[/red]")
        raise typer.Exit(1) from err


if __name__ == "__main__":
    app()
