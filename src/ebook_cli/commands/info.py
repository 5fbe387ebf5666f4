"""Info command implementation."""

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ebook_cli.commands.read import load_book
from ebook_cli.core.format_detector import detect_format


def execute_info(input_path: Path, console: Console) -> None:
    """Execute the info command."""
    format_tag = detect_format(input_path)
    handler = load_book(input_path)
    metadata = handler.get_metadata()
    toc = handler.get_toc()
    images = handler.extract_images()

    def field(label: str, value: str | None) -> str:
        return f"[dim]{label}:[/] {escape(value) if value else 'Unknown'}"

    info_lines = [
        f"[bold]{escape(metadata.title or 'Untitled')}[/]",
        "",
        field("Author", metadata.author),
        f"[dim]Format:[/] {format_tag.upper()}",
        field("Language", metadata.language),
        field("Publisher", metadata.publisher),
    ]
    if metadata.isbn:
        info_lines.append(field("ISBN", metadata.isbn))
    if metadata.tags:
        info_lines.append(field("Tags", ", ".join(metadata.tags)))
    info_lines.append(f"[dim]Images:[/] {len(images)}")
    info_lines.append(f"[dim]TOC entries:[/] {len(toc)}")
    info_lines.append(f"[dim]Size:[/] {len(handler.get_content()):,} characters")

    console.print()
    console.print(Panel("\n".join(info_lines), title="Book Information", border_style="green"))

    if toc:
        console.print()
        table = Table(title="Table of Contents", show_header=True, header_style="bold cyan")
        table.add_column("#", style="dim", width=4)
        table.add_column("Title", style="white")
        for index, entry in enumerate(toc, start=1):
            table.add_row(str(index), f"{'  ' * entry.indent}{escape(entry.title)}")
        console.print(table)
    console.print()
