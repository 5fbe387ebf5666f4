"""Optimize command implementation."""

from pathlib import Path

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from ebook_cli.commands.read import load_book
from ebook_cli.core.format_detector import detect_format
from ebook_cli.core.image_optimizer import OptimizationOptions
from ebook_cli.errors import UnsupportedFormatError

OPTIMIZABLE_FORMATS = ("epub", "cbz")


def build_options(
    max_width: int, max_height: int, quality: int, no_resize: bool
) -> OptimizationOptions:
    options = OptimizationOptions().with_quality(quality)
    if no_resize:
        return options.no_resize()
    return options.with_max_dimensions(max_width, max_height)


def execute_optimize(
    input_path: Path,
    output_path: Path | None,
    options: OptimizationOptions,
    console: Console,
) -> int:
    """Execute the optimize command; returns the number of bytes saved."""
    format_tag = detect_format(input_path)
    if format_tag not in OPTIMIZABLE_FORMATS:
        raise UnsupportedFormatError(
            f"Image optimization only supports EPUB and CBZ formats, got: {format_tag}"
        )

    output_path = output_path or input_path
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(f"Reading {input_path.name}...", total=None)
        handler = load_book(input_path)
        images = handler.extract_images()
        original_size = sum(len(image.data) for image in images)

        progress.update(task, description=f"Optimizing {len(images)} images...")
        savings = handler.optimize_images(options)

        progress.update(task, description=f"Writing {output_path.name}...")
        handler.write_to_file(output_path)

    percent = savings / original_size * 100 if original_size else 0.0
    console.print(f"[green]Optimized {format_tag.upper()}[/]")
    console.print(f"Saved {savings:,} bytes ({percent:.1f}% reduction)")
    console.print(f"[dim]Output saved to {output_path}[/]")
    return savings
