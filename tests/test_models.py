"""
Tests for data models and error types.

Tests cover:
- Metadata copy helpers
- TocEntry indentation
- Error labels and hints in messages
"""

import pytest

from ebook_cli.errors import (
    EbookError,
    InvalidStructureError,
    NotSupportedError,
    UnsupportedFormatError,
    XmlError,
)
from ebook_cli.models.book import Metadata, TocEntry


class TestMetadata:
    def test_all_fields_optional(self):
        metadata = Metadata()
        assert metadata.title is None
        assert metadata.tags is None
        assert metadata.custom_fields == {}

    def test_with_helpers_return_copies(self):
        original = Metadata(title="Old")
        updated = original.with_title("New").with_author("Someone").with_format("EPUB")

        assert original.title == "Old"
        assert original.author is None
        assert (updated.title, updated.author, updated.format) == ("New", "Someone", "EPUB")

    def test_custom_fields(self):
        metadata = Metadata()
        metadata.add_custom_field("series", "One")
        assert metadata.custom_fields == {"series": "One"}
        assert Metadata().custom_fields == {}


class TestTocEntry:
    @pytest.mark.parametrize("level,indent", [(0, 0), (1, 0), (2, 1), (4, 3)])
    def test_indent_never_negative(self, level, indent):
        assert TocEntry(title="t", level=level).indent == indent

    def test_defaults(self):
        entry = TocEntry(title="t")
        assert entry.id == 0
        assert entry.href is None
        assert entry.children == []


class TestErrors:
    """Every error message carries a label and a hint"""

    def test_message_includes_hint(self):
        error = XmlError("content.opf: bad tag")

        assert error.message == "content.opf: bad tag"
        assert str(error).startswith("XML parsing error: content.opf: bad tag")
        assert "Hint: The file may be corrupted" in str(error)

    def test_repair_hint(self):
        assert "'repair' command" in str(InvalidStructureError("too small"))

    def test_hierarchy(self):
        for error_cls in (XmlError, NotSupportedError, UnsupportedFormatError):
            assert issubclass(error_cls, EbookError)

    def test_supported_formats_listed(self):
        assert "EPUB, MOBI, AZW, PDF, FB2, CBZ, and TXT" in str(UnsupportedFormatError("x"))
