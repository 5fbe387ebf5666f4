"""
Tests for chapter document processing.

Tests cover:
- Title extraction
- Plain text and Markdown extraction
- Plain text wrapping into XHTML
- Dropping characters XML cannot carry
"""

import pytest

from ebook_cli.core.content_processor import ContentProcessor, xml_safe

CHAPTER = """<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head><title>Doc Title</title><style>p { color: red; }</style></head>
<body>
<h1>Heading</h1>
<p>Some <b>bold</b> text.</p>
<ul><li>one</li><li>two</li></ul>
<script>var x = 1;</script>
</body>
</html>"""


@pytest.fixture
def processor():
    return ContentProcessor()


class TestExtraction:
    def test_title_from_first_heading_or_title(self, processor):
        assert processor.extract_title(CHAPTER) == "Doc Title"
        assert processor.extract_title("<html><body><h2>Second</h2></body></html>") == "Second"
        assert processor.extract_title("<html><body><p>none</p></body></html>") is None

    def test_plain_text_drops_scripts_and_styles(self, processor):
        text = processor.to_plain_text(CHAPTER)

        assert "Some bold text." in text
        assert "color: red" not in text
        assert "var x" not in text

    def test_markdown(self, processor):
        markdown = processor.to_markdown(CHAPTER)

        assert "# Heading" in markdown
        assert "**bold**" in markdown
        assert "- one" in markdown
        assert "\n\n\n" not in markdown


class TestTextToXhtml:
    def test_detects_markup_documents(self, processor):
        assert processor.is_markup_document("  <?xml version='1.0'?><html/>")
        assert processor.is_markup_document("<!DOCTYPE html><html></html>")
        assert not processor.is_markup_document("Just text with <b>tags</b>")

    def test_wraps_and_escapes(self, processor):
        document = processor.text_to_xhtml("A & B", "x < y\nnext line\n")

        assert "<title>A &amp; B</title>" in document
        assert "x &lt; y\nnext line\n" in document
        assert "white-space: pre-wrap" in document

    def test_control_characters_dropped(self, processor):
        document = processor.text_to_xhtml("Page\x0c1", "one\x0ctwo\x00\n\tend")

        assert "<title>Page1</title>" in document
        assert "onetwo\n\tend" in document


class TestXmlSafe:
    def test_keeps_whitespace_and_text(self):
        assert xml_safe("tab\tnew\nline\r\n é ☃ \U0001f600") == "tab\tnew\nline\r\n é ☃ \U0001f600"

    def test_drops_invalid_characters(self):
        assert xml_safe("a\x00b\x0bc\x0cd\x1fe\ufffef\uffff") == "abcdef"
