"""Capability contracts shared by every format handler."""

import itertools
import logging
import os
import shutil
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Callable

from ebook_cli.errors import EbookIOError, NotSupportedError
from ebook_cli.models.book import ImageData, Metadata, TocEntry

log = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled"

# Marks chapter boundaries inside flattened plain-text content
CHAPTER_SEPARATOR = "\n\n---\n\n"


class TempFileNamer:
    """Produce collision-free temporary file paths.

    Names combine the process id, a nanosecond timestamp and a counter that is
    incremented under a lock, so concurrent handlers on different threads
    never receive the same path. Clock, pid and directory are injectable for
    deterministic tests.
    """

    def __init__(
        self,
        directory: Path | None = None,
        clock: Callable[[], int] = time.time_ns,
        pid: Callable[[], int] = os.getpid,
    ):
        self.directory = directory
        self._clock = clock
        self._pid = pid
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def next_path(self, prefix: str) -> Path:
        with self._lock:
            count = next(self._counter)
        directory = self.directory or Path(tempfile.gettempdir())
        return directory / f"{prefix}_{self._pid()}_{self._clock()}_{count}.tmp"


# Process-wide namer used when callers do not inject their own
default_temp_namer = TempFileNamer()


class EbookReader(ABC):
    """Read side of a format handler."""

    @abstractmethod
    def read_from_file(self, path: Path) -> None:
        """Parse the file at ``path`` into the handler's in-memory state."""

    @abstractmethod
    def get_metadata(self) -> Metadata:
        """Return a copy of the parsed metadata."""

    @abstractmethod
    def get_content(self) -> str:
        """Return the flattened plain-text content."""

    @abstractmethod
    def get_toc(self) -> list[TocEntry]:
        """Return the table of contents (may be empty)."""

    @abstractmethod
    def extract_images(self) -> list[ImageData]:
        """Return copies of all bundled images."""


class EbookWriter(ABC):
    """Write side of a format handler."""

    @abstractmethod
    def set_metadata(self, metadata: Metadata) -> None:
        pass

    @abstractmethod
    def set_content(self, content: str) -> None:
        pass

    @abstractmethod
    def add_chapter(self, title: str, content: str) -> None:
        pass

    @abstractmethod
    def add_image(self, name: str, data: bytes) -> None:
        pass

    @abstractmethod
    def write_to_file(self, path: Path) -> None:
        """Serialize the handler state to ``path``, creating parent dirs."""


class EbookOperator(EbookReader, EbookWriter):
    """Full handler: reader, writer and format-level operations."""

    #: Format tag as returned by ``detect_format``
    FORMAT: str = ""
    #: Whether ``add_chapter`` keeps chapters as separate units
    SUPPORTS_CHAPTERS: bool = False
    #: Title used by ``repair`` when none is set
    DEFAULT_TITLE: str = DEFAULT_TITLE

    def __init__(self) -> None:
        self.metadata = Metadata()

    def get_metadata(self) -> Metadata:
        return self.metadata.model_copy(deep=True)

    def set_metadata(self, metadata: Metadata) -> None:
        self.metadata = metadata.model_copy(deep=True)

    def convert_to(self, target_format: str, output_path: Path) -> None:
        """Format-specific shortcut conversion.

        Cross-format conversion lives in ``Converter``; handlers only
        override this for conversions they can do on their own.
        """
        raise NotSupportedError(
            f"Conversion from {self.FORMAT} to {target_format} is not supported"
        )

    @abstractmethod
    def validate(self) -> bool:
        """Minimal sanity check of the handler state."""

    def repair(self) -> None:
        """Best-effort fix-up of metadata; safe to call repeatedly."""
        if self.metadata.title is not None:
            self.metadata.title = self.metadata.title.strip() or None
        if self.metadata.author is not None:
            self.metadata.author = self.metadata.author.strip() or None
        if self.metadata.title is None:
            self.metadata.title = self.DEFAULT_TITLE


def ensure_parent_dir(path: Path) -> None:
    """Create the parent directory of ``path`` if it is missing."""
    try:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise EbookIOError(f"Cannot create directory for {path}: {e}") from e


def read_from_bytes(
    handler: EbookReader,
    data: bytes,
    namer: TempFileNamer | None = None,
) -> None:
    """Load ``data`` into ``handler`` through a throwaway temporary file."""
    namer = namer or default_temp_namer
    temp_path = namer.next_path("ebook_temp_read")
    try:
        temp_path.write_bytes(data)
    except OSError as e:
        raise EbookIOError(f"Cannot write temporary file {temp_path}: {e}") from e
    try:
        handler.read_from_file(temp_path)
    finally:
        temp_path.unlink(missing_ok=True)


def read_from_stream(
    handler: EbookReader,
    stream: BinaryIO,
    namer: TempFileNamer | None = None,
) -> None:
    """Buffer a byte stream fully, then parse it with ``handler``."""
    try:
        data = stream.read()
    except OSError as e:
        raise EbookIOError(f"Cannot read input stream: {e}") from e
    read_from_bytes(handler, data, namer=namer)


def write_to_stream(
    handler: EbookWriter,
    sink: BinaryIO,
    namer: TempFileNamer | None = None,
) -> None:
    """Serialize ``handler`` into a byte sink via a temporary file."""
    namer = namer or default_temp_namer
    temp_path = namer.next_path("ebook_temp_write")
    try:
        handler.write_to_file(temp_path)
        with open(temp_path, "rb") as f:
            shutil.copyfileobj(f, sink)
    except OSError as e:
        raise EbookIOError(f"Cannot copy output to stream: {e}") from e
    finally:
        temp_path.unlink(missing_ok=True)
