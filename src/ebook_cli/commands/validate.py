"""Validate command implementation."""

from pathlib import Path

from rich.console import Console

from ebook_cli.commands.read import load_book


def execute_validate(input_path: Path, console: Console) -> bool:
    """Execute the validate command; returns whether the file passed."""
    handler = load_book(input_path)
    is_valid = handler.validate()

    if is_valid:
        console.print("[green]✓ File is valid[/]")
    else:
        console.print("[yellow]✗ File has validation issues[/]")
        console.print("[dim]Try the repair command to fix common problems[/]")
    return is_valid
