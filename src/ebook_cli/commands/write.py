"""Write command implementation."""

from pathlib import Path

from rich.console import Console

from ebook_cli.core.epub_handler import EpubHandler, EpubVersion
from ebook_cli.core.format_detector import HandlerFactory, detect_format
from ebook_cli.core.handler import EbookOperator
from ebook_cli.core.txt_handler import decode_bytes
from ebook_cli.errors import EbookIOError
from ebook_cli.models.book import Metadata


def read_content_file(content_file: Path) -> str:
    try:
        return decode_bytes(content_file.read_bytes())
    except OSError as e:
        raise EbookIOError(f"{content_file}: {e}") from e


def create_writer(format_tag: str, epub_version: EpubVersion) -> EbookOperator:
    if format_tag == "epub":
        return EpubHandler(version=epub_version)
    return HandlerFactory.create(format_tag)


def execute_write(
    output_path: Path,
    format_tag: str | None,
    title: str | None,
    author: str | None,
    content_file: Path | None,
    epub_version: EpubVersion,
    console: Console,
) -> None:
    """Execute the write command."""
    format_tag = (format_tag or detect_format(output_path)).lower()
    content = read_content_file(content_file) if content_file else ""

    handler = create_writer(format_tag, epub_version)
    handler.set_metadata(Metadata(title=title, author=author))
    handler.set_content(content)
    handler.write_to_file(output_path)

    console.print(f"[green]Wrote {format_tag.upper()} ebook to {output_path}[/]")
