"""Main CLI application."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from ebook_cli.commands.convert import execute_convert
from ebook_cli.commands.info import execute_info
from ebook_cli.commands.optimize import build_options, execute_optimize
from ebook_cli.commands.read import execute_read
from ebook_cli.commands.repair import execute_repair
from ebook_cli.commands.validate import execute_validate
from ebook_cli.commands.write import execute_write
from ebook_cli.core.epub_handler import EpubVersion
from ebook_cli.errors import EbookError

app = typer.Typer(
    name="ebook-cli",
    help="Read, write, convert, validate, repair and optimize ebooks.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

EPUB_VERSIONS = {"2": EpubVersion.V2, "3": EpubVersion.V3}


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def fail(error: Exception) -> typer.Exit:
    console.print(f"[red]Error: {escape(str(error))}[/]")
    return typer.Exit(1)


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """Multi-format ebook toolkit (EPUB, MOBI, AZW, FB2, CBZ, PDF, TXT)."""
    configure_logging(verbose)


InputFile = Annotated[
    Path,
    typer.Argument(
        help="Path to the ebook file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
]


@app.command()
def read(
    input_path: InputFile,
    metadata: Annotated[
        bool,
        typer.Option("--metadata", "-m", help="Show metadata only"),
    ] = False,
    toc: Annotated[
        bool,
        typer.Option("--toc", "-t", help="Show table of contents"),
    ] = False,
    extract_images: Annotated[
        Optional[Path],
        typer.Option("--extract-images", "-e", help="Extract images to directory"),
    ] = None,
) -> None:
    """Print the content, metadata or table of contents of an ebook."""
    try:
        execute_read(
            input_path=input_path,
            show_metadata=metadata,
            show_toc=toc,
            extract_images=extract_images,
            console=console,
        )
    except EbookError as e:
        raise fail(e)


@app.command()
def write(
    output_path: Annotated[Path, typer.Argument(help="Output file path")],
    format_tag: Annotated[
        Optional[str],
        typer.Option(
            "--format",
            "-f",
            help="Format (epub, mobi, azw, fb2, cbz, txt, pdf); defaults to the extension",
        ),
    ] = None,
    title: Annotated[
        Optional[str],
        typer.Option("--title", help="Title of the ebook"),
    ] = None,
    author: Annotated[
        Optional[str],
        typer.Option("--author", "-a", help="Author of the ebook"),
    ] = None,
    content: Annotated[
        Optional[Path],
        typer.Option(
            "--content",
            "-c",
            help="Text file with the ebook content",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    epub_version: Annotated[
        str,
        typer.Option("--epub-version", help="EPUB version to write: 2 or 3"),
    ] = "3",
) -> None:
    """Create a new ebook from a title, author and text content."""
    if epub_version not in EPUB_VERSIONS:
        console.print(f"[red]Invalid EPUB version: {escape(epub_version)}. Use 2 or 3.[/]")
        raise typer.Exit(1)

    try:
        execute_write(
            output_path=output_path,
            format_tag=format_tag,
            title=title,
            author=author,
            content_file=content,
            epub_version=EPUB_VERSIONS[epub_version],
            console=console,
        )
    except EbookError as e:
        raise fail(e)


@app.command()
def convert(
    input_path: InputFile,
    output_path: Annotated[Path, typer.Argument(help="Output file path")],
    format_tag: Annotated[
        Optional[str],
        typer.Option("--format", "-f", help="Target format; defaults to the output extension"),
    ] = None,
    progress: Annotated[
        bool,
        typer.Option("--progress", "-p", help="Show progress during conversion"),
    ] = False,
) -> None:
    """Convert an ebook to another format."""
    try:
        execute_convert(
            input_path=input_path,
            output_path=output_path,
            target_format=format_tag,
            show_progress=progress,
            console=console,
        )
    except EbookError as e:
        raise fail(e)


@app.command()
def info(input_path: InputFile) -> None:
    """Display ebook metadata, image count and table of contents."""
    try:
        execute_info(input_path, console=console)
    except EbookError as e:
        raise fail(e)


@app.command()
def validate(input_path: InputFile) -> None:
    """Check an ebook for basic problems."""
    try:
        is_valid = execute_validate(input_path, console=console)
    except EbookError as e:
        raise fail(e)
    if not is_valid:
        raise typer.Exit(1)


@app.command()
def repair(
    input_path: InputFile,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output file path (default: overwrite input)"),
    ] = None,
) -> None:
    """Fix common metadata problems and save the ebook."""
    try:
        execute_repair(input_path, output, console=console)
    except EbookError as e:
        raise fail(e)


@app.command()
def optimize(
    input_path: InputFile,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output file path (default: overwrite input)"),
    ] = None,
    max_width: Annotated[
        int,
        typer.Option("--max-width", help="Maximum image width", min=1),
    ] = 1920,
    max_height: Annotated[
        int,
        typer.Option("--max-height", help="Maximum image height", min=1),
    ] = 1920,
    quality: Annotated[
        int,
        typer.Option("--quality", "-q", help="JPEG/WebP quality (1-100)", min=1, max=100),
    ] = 85,
    no_resize: Annotated[
        bool,
        typer.Option("--no-resize", help="Skip resizing, only recompress"),
    ] = False,
) -> None:
    """Recompress and downscale the images of an EPUB or CBZ file."""
    try:
        execute_optimize(
            input_path,
            output,
            build_options(max_width, max_height, quality, no_resize),
            console=console,
        )
    except EbookError as e:
        raise fail(e)


if __name__ == "__main__":
    app()
