"""Plain text reading and writing."""

import codecs
import logging
from pathlib import Path

from ebook_cli.core.codepage import LEGACY_ENCODING, LEGACY_ERRORS
from ebook_cli.core.handler import EbookOperator, ensure_parent_dir
from ebook_cli.errors import EbookIOError
from ebook_cli.models.book import ImageData, Metadata, TocEntry

log = logging.getLogger(__name__)

# Files at or above this size go through the chunked paths
STREAMING_THRESHOLD = 10 * 1024 * 1024
CHUNK_SIZE = 64 * 1024

# Tried in order; windows-1252 maps every byte, so the last step never fails
DECODE_CHAIN = (("utf-8", "strict"), (LEGACY_ENCODING, LEGACY_ERRORS))

TOC_PREFIXES = ("Chapter ", "CHAPTER ")


def decode_bytes(data: bytes) -> str:
    """Decode with the fallback chain: UTF-8, then windows-1252."""
    for encoding, errors in DECODE_CHAIN[:-1]:
        try:
            return data.decode(encoding, errors)
        except UnicodeDecodeError:
            log.debug("Text is not valid %s, trying next encoding", encoding)
    encoding, errors = DECODE_CHAIN[-1]
    return data.decode(encoding, errors)


def _decode_file(f, encoding: str, errors: str) -> str:
    decoder = codecs.getincrementaldecoder(encoding)(errors=errors)
    parts = []
    while True:
        chunk = f.read(CHUNK_SIZE)
        if not chunk:
            break
        parts.append(decoder.decode(chunk))
    parts.append(decoder.decode(b"", final=True))
    return "".join(parts)


class TxtHandler(EbookOperator):
    """Plain text documents; the title defaults to the file name.

    Reads and writes at or above ``STREAMING_THRESHOLD`` go through chunked
    I/O. Output is identical either way.
    """

    FORMAT = "txt"

    def __init__(self) -> None:
        super().__init__()
        self._content = ""

    def _set_file_metadata(self, path: Path) -> None:
        self.metadata = Metadata(title=path.stem, format="TXT")

    def read_from_file(self, path: Path) -> None:
        path = Path(path)
        try:
            size = path.stat().st_size
        except OSError as e:
            raise EbookIOError(f"{path}: {e}") from e

        if size >= STREAMING_THRESHOLD:
            log.info("Streaming large TXT file (%d bytes): %s", size, path)
            self._read_chunked(path)
        else:
            log.info("Reading TXT file: %s", path)
            self._read_whole(path)
        self._set_file_metadata(path)

    def read_from_file_streaming(self, path: Path) -> None:
        """Read in chunks whatever the size; the result matches ``read_from_file``."""
        path = Path(path)
        log.info("Streaming TXT file: %s", path)
        self._read_chunked(path)
        self._set_file_metadata(path)

    def _read_whole(self, path: Path) -> None:
        try:
            data = path.read_bytes()
        except OSError as e:
            raise EbookIOError(f"{path}: {e}") from e
        self._content = decode_bytes(data)

    def _read_chunked(self, path: Path) -> None:
        try:
            with open(path, "rb") as f:
                for encoding, errors in DECODE_CHAIN:
                    f.seek(0)
                    try:
                        self._content = _decode_file(f, encoding, errors)
                        break
                    except UnicodeDecodeError:
                        log.debug("Text is not valid %s, trying next encoding", encoding)
        except OSError as e:
            raise EbookIOError(f"{path}: {e}") from e

    def get_content(self) -> str:
        return self._content

    def get_toc(self) -> list[TocEntry]:
        toc = []
        for line in self._content.splitlines():
            stripped = line.strip()
            if stripped.startswith(TOC_PREFIXES):
                toc.append(TocEntry(id=len(toc), title=stripped, level=1))
        return toc

    def extract_images(self) -> list[ImageData]:
        return []

    def set_content(self, content: str) -> None:
        self._content = content

    def add_chapter(self, title: str, content: str) -> None:
        self._content += f"\n\n{title}\n\n{content}"

    def add_image(self, name: str, data: bytes) -> None:
        pass

    def write_to_file(self, path: Path) -> None:
        path = Path(path)
        ensure_parent_dir(path)
        if len(self._content) >= STREAMING_THRESHOLD:
            log.info("Streaming TXT output: %s", path)
            self._write_chunked(path)
            return

        log.info("Writing TXT file: %s", path)
        try:
            path.write_bytes(self._content.encode("utf-8"))
        except OSError as e:
            raise EbookIOError(f"{path}: {e}") from e

    def write_to_file_streaming(self, path: Path) -> None:
        """Write in chunks whatever the size; the bytes match ``write_to_file``."""
        path = Path(path)
        ensure_parent_dir(path)
        log.info("Streaming TXT output: %s", path)
        self._write_chunked(path)

    def _write_chunked(self, path: Path) -> None:
        try:
            with open(path, "wb") as f:
                for start in range(0, len(self._content), CHUNK_SIZE):
                    f.write(self._content[start:start + CHUNK_SIZE].encode("utf-8"))
        except OSError as e:
            raise EbookIOError(f"{path}: {e}") from e

    def convert_to(self, target_format: str, output_path: Path) -> None:
        if target_format.lower() not in ("md", "markdown"):
            super().convert_to(target_format, output_path)
            return

        output_path = Path(output_path)
        ensure_parent_dir(output_path)
        title = self.metadata.title or self.DEFAULT_TITLE
        try:
            output_path.write_text(f"# {title}\n\n{self._content}", encoding="utf-8")
        except OSError as e:
            raise EbookIOError(f"{output_path}: {e}") from e

    def validate(self) -> bool:
        return bool(self._content)

    def repair(self) -> None:
        self._content = self._content.strip()
        super().repair()
