"""Data models."""

from ebook_cli.models.book import (
    ImageData,
    Metadata,
    TocEntry,
)
from ebook_cli.models.comic import ComicInfo

__all__ = [
    # Book models
    "Metadata",
    "TocEntry",
    "ImageData",
    # Format-specific models
    "ComicInfo",
]
