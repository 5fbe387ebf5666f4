"""PDF reading and writing on top of pypdf.

Text extraction is a light-weight scanner over each page's decoded content
stream: it picks up the literal string operand of every ``Tj``/``TJ``
operator. Fonts, encodings and glyph spacing are not interpreted, so the
result is a best-effort plain-text view.
"""

import logging
import re
from pathlib import Path

# pypdf warns about every malformed object reference it recovers from
logging.getLogger("pypdf").setLevel(logging.ERROR)

import pypdf
from pypdf.errors import PyPdfError
from pypdf.generic import DecodedStreamObject, DictionaryObject, NameObject

from ebook_cli.core.handler import EbookOperator, ensure_parent_dir
from ebook_cli.errors import EbookIOError, PdfError
from ebook_cli.models.book import ImageData, Metadata, TocEntry

log = logging.getLogger(__name__)

PAGE_WIDTH = 612
PAGE_HEIGHT = 792

WHITESPACE = b" \t\r\n\f\0"
DELIMITERS = WHITESPACE + b"()<>[]{}/%"
TEXT_OPERATORS = (b"Tj", b"TJ")

PAGE_MARKER = re.compile(r"^\s*--- Page \d+ ---\s*$")
ESCAPE = re.compile(r"\\([nrt()\[\]{}\\])")
ESCAPE_VALUES = {"n": "\n", "r": "\r", "t": "\t"}


def _read_literal(data: bytes, start: int) -> tuple[bytes, int]:
    """Read a literal string whose opening paren is at ``start``.

    Returns the raw (still escaped) body and the index after the closing
    paren. An unterminated string runs to the end of the data.
    """
    depth = 1
    i = start + 1
    while i < len(data):
        byte = data[i]
        if byte == 0x5C:  # backslash: skip the escaped byte
            i += 2
            continue
        if byte == 0x28:
            depth += 1
        elif byte == 0x29:
            depth -= 1
            if depth == 0:
                return data[start + 1:i], i + 1
        i += 1
    return data[start + 1:], len(data)


def _is_operator_at(data: bytes, i: int) -> bool:
    if data[i:i + 2] not in TEXT_OPERATORS:
        return False
    before_ok = i == 0 or data[i - 1] in DELIMITERS
    after_ok = i + 2 >= len(data) or data[i + 2] in DELIMITERS
    return before_ok and after_ok


def _decode_literal(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def scan_text_operators(data: bytes) -> list[str]:
    """Return the literal operand of each text-show operator, in order.

    Operators are only recognised outside string literals and on token
    boundaries. The operand is the last literal seen since the previous
    operator; escapes are left in place for :func:`clean_text`.
    """
    strings = []
    last_literal: bytes | None = None
    i = 0
    while i < len(data):
        if data[i] == 0x28:
            last_literal, i = _read_literal(data, i)
            continue
        if _is_operator_at(data, i):
            if last_literal is not None:
                strings.append(_decode_literal(last_literal))
                last_literal = None
            i += 2
            continue
        i += 1
    return strings


def clean_text(text: str) -> str:
    """Drop page markers and blank lines, then undo string escapes."""
    lines = []
    for line in text.splitlines():
        if not line.strip() or PAGE_MARKER.match(line):
            continue
        lines.append(line.rstrip())
    joined = "\n".join(lines)
    return ESCAPE.sub(lambda m: ESCAPE_VALUES.get(m.group(1), m.group(1)), joined)


def escape_literal(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


class PdfHandler(EbookOperator):
    """PDF files via pypdf; writes a single-page text document."""

    FORMAT = "pdf"

    def __init__(self) -> None:
        super().__init__()
        self._content = ""
        self._reader: pypdf.PdfReader | None = None

    def read_from_file(self, path: Path) -> None:
        path = Path(path)
        log.info("Reading PDF file: %s", path)
        self.metadata = Metadata()

        try:
            reader = pypdf.PdfReader(str(path))
            self._extract_metadata(reader)
            self._content = self._extract_text(reader)
        except PyPdfError as e:
            raise PdfError(f"{path}: {e}") from e
        except OSError as e:
            raise EbookIOError(f"{path}: {e}") from e

        self._reader = reader

    def _extract_metadata(self, reader: pypdf.PdfReader) -> None:
        info = reader.metadata
        if info is not None:
            self.metadata.title = info.title or None
            self.metadata.author = info.author or None
            self.metadata.publisher = info.subject or None
        self.metadata.format = "PDF"

    def _extract_text(self, reader: pypdf.PdfReader) -> str:
        parts = []
        for page_num, page in enumerate(reader.pages, start=1):
            contents = page.get_contents()
            if contents is not None:
                strings = scan_text_operators(contents.get_data())
                parts.append("".join(s + " " for s in strings) + "\n")
            parts.append(f"\n--- Page {page_num} ---\n")
        log.debug("Scanned %d PDF pages", len(reader.pages))
        return clean_text("".join(parts))

    def get_content(self) -> str:
        return self._content

    def get_toc(self) -> list[TocEntry]:
        """Flatten the document outline (bookmarks), if there is one."""
        if self._reader is None:
            return []

        entries: list[TocEntry] = []

        def flatten(items: list, level: int) -> None:
            for item in items:
                if isinstance(item, list):
                    flatten(item, level + 1)
                else:
                    entries.append(TocEntry(id=len(entries), title=item.title, level=level))

        try:
            flatten(self._reader.outline, 1)
        except PyPdfError as e:
            log.warning("Unreadable PDF outline: %s", e)
            return []
        return entries

    def extract_images(self) -> list[ImageData]:
        return []

    def set_content(self, content: str) -> None:
        self._content = content

    def add_chapter(self, title: str, content: str) -> None:
        self._content += "\n\n" + content

    def add_image(self, name: str, data: bytes) -> None:
        # Images are not embedded in generated PDFs
        pass

    def _build_writer(self) -> pypdf.PdfWriter:
        writer = pypdf.PdfWriter()
        page = writer.add_blank_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)

        font = DictionaryObject({
            NameObject("/Type"): NameObject("/Font"),
            NameObject("/Subtype"): NameObject("/Type1"),
            NameObject("/BaseFont"): NameObject("/Helvetica"),
        })
        page[NameObject("/Resources")] = DictionaryObject({
            NameObject("/Font"): DictionaryObject({NameObject("/F1"): font}),
        })

        stream = DecodedStreamObject()
        stream.set_data(
            f"BT /F1 12 Tf 50 750 Td ({escape_literal(self._content)}) Tj ET".encode("utf-8")
        )
        page.replace_contents(stream)

        info = {}
        if self.metadata.title is not None:
            info["/Title"] = self.metadata.title
        if self.metadata.author is not None:
            info["/Author"] = self.metadata.author
        if self.metadata.publisher is not None:
            info["/Subject"] = self.metadata.publisher
        if info:
            writer.add_metadata(info)
        return writer

    def write_to_file(self, path: Path) -> None:
        path = Path(path)
        ensure_parent_dir(path)
        log.info("Writing PDF file: %s", path)
        try:
            writer = self._build_writer()
            with open(path, "wb") as f:
                writer.write(f)
        except PyPdfError as e:
            raise PdfError(f"{path}: {e}") from e
        except OSError as e:
            raise EbookIOError(f"{path}: {e}") from e

    def validate(self) -> bool:
        return self._reader is not None
