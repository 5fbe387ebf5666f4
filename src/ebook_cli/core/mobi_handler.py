"""MOBI/PalmDOC header decoding and a minimal synthetic writer.

The reader understands the fixed-offset MOBI header that follows the magic
``MOBI`` at byte 60, and falls back to the legacy PalmDOC layout where the
first 32 bytes hold a null-padded title. Record decompression is not
performed; the text after the header is decoded as is.

The writer does not round-trip the original structure: it emits a 78-byte
header carrying a truncated title, followed by the UTF-8 content.
"""

import html
import logging
import struct
from dataclasses import dataclass
from pathlib import Path

from ebook_cli.core.codepage import decode_legacy
from ebook_cli.core.format_detector import guess_mime_type
from ebook_cli.core.handler import CHAPTER_SEPARATOR, EbookOperator, ensure_parent_dir
from ebook_cli.errors import EbookIOError, InvalidStructureError
from ebook_cli.models.book import ImageData, Metadata, TocEntry

log = logging.getLogger(__name__)

MOBI_MAGIC = b"MOBI"
MAGIC_OFFSET = 60
MIN_FILE_SIZE = 78
FULL_HEADER_SIZE = 232
LEGACY_TEXT_START = 78
LEGACY_TITLE_SIZE = 32

# Offsets relative to the magic
HEADER_LENGTH_OFFSET = 4
MOBI_TYPE_OFFSET = 8
TEXT_ENCODING_OFFSET = 16
FIRST_IMAGE_OFFSET = 76
TITLE_LENGTH_OFFSET = 88
TITLE_OFFSET = 92
LANGUAGE_OFFSET = 108

LANGUAGE_CODES = (
    "en", "fr", "de", "it", "es", "nl", "sv",
    "nb", "da", "fi", "ja", "zh", "ko", "ar",
)


def language_id_to_code(lang_id: int) -> str:
    """Map a MOBI language id to an ISO 639-1 code (unknown ids -> en)."""
    if 0 <= lang_id < len(LANGUAGE_CODES):
        return LANGUAGE_CODES[lang_id]
    return "en"


def _read_u32(data: bytes, offset: int) -> int | None:
    if offset + 4 > len(data):
        return None
    return struct.unpack_from(">I", data, offset)[0]


def _read_u16(data: bytes, offset: int) -> int | None:
    if offset + 2 > len(data):
        return None
    return struct.unpack_from(">H", data, offset)[0]


@dataclass
class MobiHeader:
    """Fields decoded from the MOBI header."""

    magic: bytes
    header_length: int
    mobi_type: int
    text_encoding: int
    first_image_index: int = 0

    @classmethod
    def parse(cls, data: bytes, pos: int) -> "MobiHeader":
        if len(data) < pos + FULL_HEADER_SIZE:
            raise InvalidStructureError("MOBI header too small")

        return cls(
            magic=data[pos:pos + 4],
            header_length=_read_u32(data, pos + HEADER_LENGTH_OFFSET) or 0,
            mobi_type=_read_u32(data, pos + MOBI_TYPE_OFFSET) or 0,
            text_encoding=_read_u32(data, pos + TEXT_ENCODING_OFFSET) or 0,
            first_image_index=_read_u32(data, pos + FIRST_IMAGE_OFFSET) or 0,
        )


def decode_text(data: bytes) -> str:
    """Decode a text block: BOM-marked UTF-16, then UTF-8, then windows-1252."""
    if data[:2] in (b"\xfe\xff", b"\xff\xfe"):
        codec = "utf-16-be" if data[:2] == b"\xfe\xff" else "utf-16-le"
        try:
            return data[2:].decode(codec)
        except UnicodeDecodeError:
            pass

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return decode_legacy(data)


def normalize_markup(text: str) -> str:
    """Turn MOBI-specific markup into plain text."""
    text = (
        text.replace("<mbp:pagebreak/>", CHAPTER_SEPARATOR)
        .replace("<mbp:pagebreak>", CHAPTER_SEPARATOR)
        .replace("</mbp:pagebreak>", "")
    )
    return html.unescape(text)


def _is_heading(line: str) -> bool:
    if line.startswith(("Chapter ", "CHAPTER ", "# ")):
        return True
    # Short all-caps lines
    return (
        0 < len(line) < 100
        and any(c.isalpha() for c in line)
        and all(c.isupper() or c == " " for c in line)
    )


class MobiHandler(EbookOperator):
    """Read MOBI headers and text; write a synthetic MOBI-like file."""

    FORMAT = "mobi"

    def __init__(self) -> None:
        super().__init__()
        self.header: MobiHeader | None = None
        self._content = ""
        self._raw_data = b""
        self._images: list[ImageData] = []
        self._toc: list[TocEntry] = []

    @property
    def format_label(self) -> str:
        return self.FORMAT.upper()

    def read_from_file(self, path: Path) -> None:
        path = Path(path)
        log.info("Reading %s file: %s", self.format_label, path)
        try:
            self._raw_data = path.read_bytes()
        except OSError as e:
            raise EbookIOError(f"{path}: {e}") from e

        self.metadata = Metadata()
        self.header = None
        self._parse_header()
        self._extract_text()
        self._extract_toc()

    def _parse_header(self) -> None:
        data = self._raw_data
        if len(data) < MIN_FILE_SIZE:
            raise InvalidStructureError("File too small")

        if data[MAGIC_OFFSET:MAGIC_OFFSET + 4] == MOBI_MAGIC:
            self._parse_full_header(MAGIC_OFFSET)
        else:
            # Legacy PalmDOC: null-padded title in the first 32 bytes
            raw_name = data[:LEGACY_TITLE_SIZE].rstrip(b"\0")
            try:
                name = raw_name.decode("utf-8")
            except UnicodeDecodeError:
                name = "Unknown"
            if name:
                self.metadata.title = name

        self.metadata.format = self.format_label

    def _parse_full_header(self, pos: int) -> None:
        data = self._raw_data
        self.header = MobiHeader.parse(data, pos)
        log.debug("MOBI header: %s", self.header)

        if len(data) > pos + TITLE_LENGTH_OFFSET:
            name_length = data[pos + TITLE_LENGTH_OFFSET]
            start = pos + TITLE_OFFSET
            if len(data) > start + name_length:
                try:
                    self.metadata.title = data[start:start + name_length].decode("utf-8")
                except UnicodeDecodeError:
                    log.debug("MOBI title is not valid UTF-8")

        lang_id = _read_u16(data, pos + LANGUAGE_OFFSET)
        if lang_id is not None:
            self.metadata.language = language_id_to_code(lang_id)

    def _extract_text(self) -> None:
        if self.header is not None:
            text_start = self.header.header_length + MAGIC_OFFSET
        else:
            text_start = LEGACY_TEXT_START

        if text_start >= len(self._raw_data):
            self._content = ""
            return

        self._content = normalize_markup(decode_text(self._raw_data[text_start:]))

    def _extract_toc(self) -> None:
        """Guess chapter headings from the shape of each line."""
        headings = [line.strip() for line in self._content.splitlines() if _is_heading(line.strip())]
        self._toc = [
            TocEntry(id=index, title=title, level=1) for index, title in enumerate(headings)
        ]

    def get_content(self) -> str:
        return self._content

    def get_toc(self) -> list[TocEntry]:
        return [entry.model_copy(deep=True) for entry in self._toc]

    def extract_images(self) -> list[ImageData]:
        return [image.model_copy(deep=True) for image in self._images]

    def set_content(self, content: str) -> None:
        self._content = content

    def add_chapter(self, title: str, content: str) -> None:
        self._content += content + "\n"

    def add_image(self, name: str, data: bytes) -> None:
        self._images.append(
            ImageData(name=name, mime_type=guess_mime_type(name), data=data)
        )

    def _build_header(self) -> bytes:
        header = bytearray(LEGACY_TEXT_START)
        title = self.metadata.title or "Untitled"
        # Cut on a character boundary so the title stays valid UTF-8
        title_bytes = (
            title.encode("utf-8")[:LEGACY_TITLE_SIZE]
            .decode("utf-8", errors="ignore")
            .encode("utf-8")
        )
        header[:len(title_bytes)] = title_bytes
        return bytes(header)

    def write_to_file(self, path: Path) -> None:
        path = Path(path)
        ensure_parent_dir(path)
        log.info("Writing %s file: %s", self.format_label, path)
        try:
            with open(path, "wb") as f:
                f.write(self._build_header())
                f.write(self._content.encode("utf-8"))
        except OSError as e:
            raise EbookIOError(f"{path}: {e}") from e

    def validate(self) -> bool:
        return bool(self._raw_data)
