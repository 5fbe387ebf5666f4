"""Convert command implementation."""

from pathlib import Path

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from ebook_cli.core.converter import Converter
from ebook_cli.core.format_detector import detect_format


def execute_convert(
    input_path: Path,
    output_path: Path,
    target_format: str | None,
    show_progress: bool,
    console: Console,
) -> None:
    """Execute the convert command."""
    converter = Converter()
    source = detect_format(input_path)
    target = (target_format or detect_format(output_path)).lower()
    console.print(f"Converting from [cyan]{source}[/] to [cyan]{target}[/]")

    if show_progress:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=console,
        ) as progress:
            task = progress.add_task("Starting...", total=Converter.TOTAL_STEPS)

            def on_step(step: int, total: int, message: str) -> None:
                progress.update(task, completed=step, total=total, description=message)

            converter.convert(input_path, output_path, target, progress=on_step)
    else:
        converter.convert(input_path, output_path, target)

    console.print(f"[green]Converted to {output_path}[/]")
