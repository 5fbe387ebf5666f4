"""Format detection and handler creation based on file extension."""

from pathlib import Path

from ebook_cli.core.handler import EbookOperator
from ebook_cli.errors import UnsupportedFormatError

MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "html": "application/xhtml+xml",
    "htm": "application/xhtml+xml",
    "xhtml": "application/xhtml+xml",
    "css": "text/css",
    "js": "application/javascript",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def guess_mime_type(filename: str) -> str:
    """Guess a MIME type from the file extension (never sniffs bytes)."""
    suffix = Path(filename).suffix.lower().lstrip(".")
    return MIME_TYPES.get(suffix, DEFAULT_MIME_TYPE)


class HandlerFactory:
    """Factory for creating the format handler for a file."""

    SUPPORTED_FORMATS = {
        ".epub": "epub",
        ".mobi": "mobi",
        ".azw": "azw",
        ".azw3": "azw",
        ".fb2": "fb2",
        ".cbz": "cbz",
        ".txt": "txt",
        ".pdf": "pdf",
    }

    @classmethod
    def detect_format(cls, path: Path) -> str:
        """Detect file format from extension.

        Args:
            path: Path to the ebook file

        Returns:
            Format tag ("epub", "mobi", "azw", "fb2", "cbz", "txt" or "pdf")

        Raises:
            UnsupportedFormatError: If the extension is missing or unknown
        """
        suffix = Path(path).suffix.lower()
        if not suffix:
            raise UnsupportedFormatError(f"No file extension: {path}")

        if suffix not in cls.SUPPORTED_FORMATS:
            raise UnsupportedFormatError(
                f"Unsupported extension: {suffix.lstrip('.')}"
            )
        return cls.SUPPORTED_FORMATS[suffix]

    @classmethod
    def is_supported(cls, path: Path) -> bool:
        return Path(path).suffix.lower() in cls.SUPPORTED_FORMATS

    @classmethod
    def create(cls, format_tag: str) -> EbookOperator:
        """Create an empty handler for a format tag.

        Raises:
            UnsupportedFormatError: If no handler exists for the tag
        """
        tag = format_tag.lower()

        if tag == "epub":
            from ebook_cli.core.epub_handler import EpubHandler

            return EpubHandler()
        elif tag == "mobi":
            from ebook_cli.core.mobi_handler import MobiHandler

            return MobiHandler()
        elif tag in ("azw", "azw3"):
            from ebook_cli.core.azw_handler import AzwHandler

            return AzwHandler()
        elif tag == "fb2":
            from ebook_cli.core.fb2_handler import Fb2Handler

            return Fb2Handler()
        elif tag == "cbz":
            from ebook_cli.core.cbz_handler import CbzHandler

            return CbzHandler()
        elif tag == "txt":
            from ebook_cli.core.txt_handler import TxtHandler

            return TxtHandler()
        elif tag == "pdf":
            from ebook_cli.core.pdf_handler import PdfHandler

            return PdfHandler()

        raise UnsupportedFormatError(format_tag)

    @classmethod
    def create_for_path(cls, path: Path) -> EbookOperator:
        """Create the handler matching the extension of ``path``."""
        return cls.create(cls.detect_format(path))


def detect_format(path: Path) -> str:
    return HandlerFactory.detect_format(path)
