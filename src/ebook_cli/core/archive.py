"""Zip helpers shared by the EPUB and CBZ handlers."""

import zipfile
import zlib
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ebook_cli.errors import EbookIOError, NotFoundError, ZipArchiveError

# Fixed entry timestamp so identical handler state gives identical archives
ENTRY_DATE_TIME = (1980, 1, 1, 0, 0, 0)


@contextmanager
def open_archive(path: Path, mode: str = "r") -> Iterator[zipfile.ZipFile]:
    """Open a zip archive, translating library errors into ebook errors."""
    try:
        with zipfile.ZipFile(path, mode) as archive:
            yield archive
    except (zipfile.BadZipFile, zlib.error) as e:
        raise ZipArchiveError(f"{path}: {e}") from e
    except OSError as e:
        raise EbookIOError(f"{path}: {e}") from e


def read_entry(archive: zipfile.ZipFile, name: str) -> bytes:
    """Read a named entry; a missing entry raises ``NotFoundError``."""
    try:
        return archive.read(name)
    except KeyError as e:
        raise NotFoundError(f"{name} not found in archive") from e


def write_entry(
    archive: zipfile.ZipFile,
    name: str,
    data: bytes | str,
    compress: bool = True,
) -> None:
    """Write one entry with a fixed timestamp."""
    info = zipfile.ZipInfo(name, date_time=ENTRY_DATE_TIME)
    info.compress_type = zipfile.ZIP_DEFLATED if compress else zipfile.ZIP_STORED
    info.external_attr = 0o644 << 16
    archive.writestr(info, data)
