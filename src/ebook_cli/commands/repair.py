"""Repair command implementation."""

from pathlib import Path

from rich.console import Console

from ebook_cli.commands.read import load_book


def execute_repair(input_path: Path, output_path: Path | None, console: Console) -> None:
    """Execute the repair command.

    Reads the book, applies the handler's repair and writes it back, to
    ``output_path`` when given and in place otherwise.
    """
    handler = load_book(input_path)
    handler.repair()

    output_path = output_path or input_path
    handler.write_to_file(output_path)
    console.print(f"[green]Repaired and saved to {output_path}[/]")
