"""Pairwise format conversion built on the reader/writer contracts."""

import logging
from pathlib import Path
from typing import Callable

from ebook_cli.core.format_detector import HandlerFactory, detect_format
from ebook_cli.core.handler import CHAPTER_SEPARATOR, EbookOperator, ensure_parent_dir
from ebook_cli.errors import NotSupportedError

log = logging.getLogger(__name__)

# (step, total, message)
ProgressCallback = Callable[[int, int, str], None]


def split_chapters(content: str) -> list[str]:
    """Split flattened content on the chapter separator.

    Whitespace-only pieces are dropped; text without a separator is a single
    chapter. Pieces are not trimmed so chapter text survives byte for byte.
    """
    pieces = [piece for piece in content.split(CHAPTER_SEPARATOR) if piece.strip()]
    return pieces or [content]


class Converter:
    """Convert between formats listed in ``SUPPORTED_CONVERSIONS``."""

    SUPPORTED_CONVERSIONS = frozenset({
        ("txt", "epub"),
        ("txt", "pdf"),
        ("txt", "mobi"),
        ("txt", "fb2"),
        ("txt", "azw"),
        ("epub", "txt"),
        ("epub", "pdf"),
        ("mobi", "txt"),
        ("azw", "txt"),
        ("fb2", "txt"),
        ("pdf", "txt"),
    })

    TOTAL_STEPS = 3

    def __init__(self, factory: HandlerFactory | None = None):
        self.factory = factory or HandlerFactory()

    @classmethod
    def is_supported(cls, source: str, target: str) -> bool:
        return (source, target) in cls.SUPPORTED_CONVERSIONS

    def convert(
        self,
        input_path: Path,
        output_path: Path,
        target_format: str | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        """Convert ``input_path`` into ``output_path``.

        Args:
            input_path: Source ebook; its format comes from the extension.
            output_path: Destination file; parent directories are created.
            target_format: Target format tag. Defaults to the format of
                ``output_path``'s extension.
            progress: Optional ``(step, total, message)`` callback invoked for
                the read, transform and write steps.

        Raises:
            NotSupportedError: If the format pair is not in
                ``SUPPORTED_CONVERSIONS``.
        """
        input_path = Path(input_path)
        output_path = Path(output_path)
        source = detect_format(input_path)
        target = (target_format or detect_format(output_path)).lower()
        if target == "azw3":
            target = "azw"

        if not self.is_supported(source, target):
            raise NotSupportedError(
                f"Conversion from {source} to {target} is not supported"
            )

        def report(step: int, message: str) -> None:
            if progress is not None:
                progress(step, self.TOTAL_STEPS, message)

        log.info("Converting %s (%s) -> %s (%s)", input_path, source, output_path, target)

        report(1, f"Reading {source.upper()}")
        reader = self.factory.create(source)
        reader.read_from_file(input_path)

        report(2, f"Converting to {target.upper()}")
        writer = self.transfer(reader, self.factory.create(target), target)

        report(3, f"Writing {target.upper()}")
        ensure_parent_dir(output_path)
        writer.write_to_file(output_path)

    @staticmethod
    def transfer(reader: EbookOperator, writer: EbookOperator, target: str) -> EbookOperator:
        """Push content and metadata from ``reader`` into ``writer``."""
        content = reader.get_content()
        metadata = reader.get_metadata().with_format(target.upper())

        writer.set_metadata(metadata)
        writer.set_content(content)
        if writer.SUPPORTS_CHAPTERS:
            chapters = split_chapters(content)
            log.debug("Splitting content into %d chapters", len(chapters))
            for number, chapter in enumerate(chapters, start=1):
                writer.add_chapter(f"Chapter {number}", chapter)
        return writer
