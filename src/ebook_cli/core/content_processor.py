"""Convert between (X)HTML chapter documents and plain text or Markdown."""

import re
import warnings
from html import escape

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from markdownify import markdownify as md

# EPUB content documents are XHTML; parsing them as HTML is intended
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

_DOCUMENT_PREFIXES = ("<?xml", "<!doctype", "<html")

# Everything outside the XML 1.0 Char production
_INVALID_XML_CHARS = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def xml_safe(text: str) -> str:
    """Drop characters XML 1.0 cannot carry, such as form feeds and NULs."""
    return _INVALID_XML_CHARS.sub("", text)


class ContentProcessor:
    """Process chapter documents into text and back."""

    def is_markup_document(self, content: str) -> bool:
        """True when ``content`` already is a full (X)HTML document."""
        return content.lstrip().lower().startswith(_DOCUMENT_PREFIXES)

    def extract_title(self, html_content: str | bytes) -> str | None:
        """Return the text of the first h1, h2 or title element."""
        soup = BeautifulSoup(html_content, "lxml")
        element = soup.find(["h1", "h2", "title"])
        if element:
            text = element.get_text(strip=True)
            if text:
                return text
        return None

    def to_plain_text(self, html_content: str | bytes) -> str:
        """Extract the body text of an (X)HTML document."""
        soup = BeautifulSoup(html_content, "lxml")
        for tag in soup(["script", "style"]):
            tag.decompose()
        body = soup.body or soup
        return body.get_text().strip()

    def to_markdown(self, html_content: str | bytes) -> str:
        """Convert an (X)HTML document to clean Markdown."""
        soup = BeautifulSoup(html_content, "lxml")
        for tag in soup(["script", "style", "nav"]):
            tag.decompose()
        body = soup.body or soup
        markdown = md(str(body), heading_style="ATX", bullets="-")

        # Collapse runs of blank lines
        cleaned = []
        prev_blank = False
        for line in (line.rstrip() for line in markdown.split("\n")):
            is_blank = not line.strip()
            if is_blank and prev_blank:
                continue
            cleaned.append(line)
            prev_blank = is_blank

        return "\n".join(cleaned).strip()

    def text_to_xhtml(self, title: str, text: str) -> str:
        """Wrap plain text into a standalone XHTML chapter document.

        Line breaks are kept verbatim and rendered through ``pre-wrap``.
        """
        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            "<!DOCTYPE html>\n"
            '<html xmlns="http://www.w3.org/1999/xhtml">\n'
            "<head>\n"
            f"  <title>{escape(xml_safe(title), quote=False)}</title>\n"
            "</head>\n"
            "<body>\n"
            '<section style="white-space: pre-wrap">'
            f"{escape(xml_safe(text), quote=False)}"
            "</section>\n"
            "</body>\n"
            "</html>\n"
        )
