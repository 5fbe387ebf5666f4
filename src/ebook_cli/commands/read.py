"""Read command implementation."""

from pathlib import Path

from rich.console import Console

from ebook_cli.core.format_detector import HandlerFactory
from ebook_cli.core.handler import EbookOperator
from ebook_cli.errors import EbookIOError
from ebook_cli.models.book import ImageData, Metadata, TocEntry


def load_book(input_path: Path) -> EbookOperator:
    """Create the handler for ``input_path`` and read the file into it."""
    handler = HandlerFactory.create_for_path(input_path)
    handler.read_from_file(input_path)
    return handler


def metadata_json(metadata: Metadata) -> str:
    # Cover bytes are not printable
    return metadata.model_dump_json(indent=2, exclude={"cover_image"}, exclude_none=True)


def format_toc(toc: list[TocEntry]) -> list[str]:
    return [f"{'  ' * entry.indent}{entry.title}" for entry in toc]


def image_target(output_dir: Path, image: ImageData) -> Path:
    """Where to save an image: its archive path, kept inside ``output_dir``."""
    root = output_dir.resolve()
    target = (root / image.name).resolve()
    if root not in target.parents:
        target = root / Path(image.name).name
    return target


def save_images(images: list[ImageData], output_dir: Path) -> None:
    try:
        for image in images:
            target = image_target(output_dir, image)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(image.data)
    except OSError as e:
        raise EbookIOError(f"Cannot save images to {output_dir}: {e}") from e


def execute_read(
    input_path: Path,
    show_metadata: bool,
    show_toc: bool,
    extract_images: Path | None,
    console: Console,
) -> None:
    """Execute the read command."""
    handler = load_book(input_path)

    if show_metadata:
        console.print_json(metadata_json(handler.get_metadata()))
    elif show_toc:
        toc = handler.get_toc()
        if not toc:
            console.print("[dim]No table of contents found[/]")
        for line in format_toc(toc):
            console.print(line, markup=False, highlight=False)
    else:
        console.print(handler.get_content(), markup=False, highlight=False)

    if extract_images is not None:
        images = handler.extract_images()
        save_images(images, extract_images)
        console.print(f"[green]Extracted {len(images)} images to {extract_images}[/]")
