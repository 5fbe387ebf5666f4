"""EPUB (OCF zip container) reading and writing."""

import logging
import posixpath
import uuid
import zipfile
from dataclasses import dataclass
from enum import Enum
from html import escape
from pathlib import Path

import ebooklib
from ebooklib import epub
from lxml import etree

from ebook_cli.core.archive import open_archive, read_entry, write_entry
from ebook_cli.core.content_processor import ContentProcessor, xml_safe
from ebook_cli.core.format_detector import guess_mime_type
from ebook_cli.core.handler import (
    CHAPTER_SEPARATOR,
    EbookOperator,
    ensure_parent_dir,
)
from ebook_cli.core.image_optimizer import OptimizationOptions, optimize_images
from ebook_cli.errors import EbookIOError, InvalidStructureError, NotFoundError, XmlError
from ebook_cli.models.book import ImageData, Metadata, TocEntry

log = logging.getLogger(__name__)

MIMETYPE = "application/epub+zip"
CONTAINER_PATH = "META-INF/container.xml"
CONTENT_DIR = "OEBPS"
OPF_NAMESPACE = "http://www.idpf.org/2007/opf"
PACKAGE_SECTIONS = ("metadata", "manifest", "spine")
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp")

CONTAINER_XML = """<?xml version="1.0"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="OEBPS/content.opf" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>"""


class EpubVersion(str, Enum):
    """EPUB package version written by the handler."""

    V2 = "2.0"
    V3 = "3.0"


@dataclass
class Chapter:
    """One content document in spine order."""

    title: str
    content: str
    filename: str


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def _parse_xml(data: bytes, name: str) -> etree._Element:
    try:
        return etree.fromstring(data)
    except etree.XMLSyntaxError as e:
        raise XmlError(f"{name}: {e}") from e


def _check_package(opf: etree._Element, opf_path: str) -> None:
    missing = [
        section
        for section in PACKAGE_SECTIONS
        if opf.find(f"{{{OPF_NAMESPACE}}}{section}") is None
    ]
    if missing:
        raise InvalidStructureError(f"{opf_path}: no {', '.join(missing)} in package document")


def _escape(text: str) -> str:
    return escape(xml_safe(text))


def _dc_values(book: epub.EpubBook, name: str) -> list[str]:
    try:
        entries = book.get_metadata("DC", name)
    except KeyError:
        # No Dublin Core namespace declared at all
        return []
    return [value.strip() for value, _ in entries if value and value.strip()]


def _first_dc_value(book: epub.EpubBook, name: str) -> str | None:
    values = _dc_values(book, name)
    return values[0] if values else None


def _cover_id(book: epub.EpubBook) -> str | None:
    """Manifest id named by <meta name="cover" content="..."/>."""
    try:
        entries = book.get_metadata("OPF", "cover") + book.get_metadata("OPF", "meta")
    except KeyError:
        return None
    for _, attributes in entries:
        if attributes and attributes.get("name") == "cover":
            return attributes.get("content")
    return None


class EpubHandler(EbookOperator):
    """Read and write EPUB 2/3 files."""

    FORMAT = "epub"
    SUPPORTS_CHAPTERS = True

    def __init__(self, version: EpubVersion = EpubVersion.V3):
        super().__init__()
        self.version = EpubVersion(version)
        self.processor = ContentProcessor()
        self._content = ""
        self._chapters: list[Chapter] = []
        self._images: list[ImageData] = []
        self._opf_dir = ""

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read_from_file(self, path: Path) -> None:
        path = Path(path)
        log.info("Reading EPUB file: %s", path)

        self.metadata = Metadata()
        self._content = ""
        self._chapters = []
        self._images = []

        with open_archive(path) as archive:
            log.debug("EPUB archive opened with %d files", len(archive.infolist()))
            opf_path = self._find_opf_path(archive)
            _check_package(_parse_xml(read_entry(archive, opf_path), opf_path), opf_path)
            self._read_images(archive)
        self._opf_dir = posixpath.dirname(opf_path)

        book = self._load_book(path)
        self._read_metadata(book)
        self._read_chapters(book)
        self._read_cover(book)

        self._content = CHAPTER_SEPARATOR.join(
            self.processor.to_plain_text(chapter.content)
            for chapter in self._chapters
        )
        self.metadata.format = "EPUB"

    def _find_opf_path(self, archive: zipfile.ZipFile) -> str:
        """Locate the package document through META-INF/container.xml."""
        container = _parse_xml(read_entry(archive, CONTAINER_PATH), CONTAINER_PATH)
        for element in container.iter():
            if isinstance(element.tag, str) and _local_name(element) == "rootfile":
                full_path = element.get("full-path")
                if full_path:
                    return full_path
        raise NotFoundError("OPF path not found in container.xml")

    @staticmethod
    def _load_book(path: Path) -> epub.EpubBook:
        try:
            return epub.read_epub(str(path))
        except KeyError as e:
            raise NotFoundError(f"{path}: missing archive entry {e}") from e
        except epub.EpubException as e:
            raise InvalidStructureError(f"{path}: {e.msg}") from e
        except etree.LxmlError as e:
            raise XmlError(f"{path}: {e}") from e

    def _read_metadata(self, book: epub.EpubBook) -> None:
        """Map the OPF Dublin Core metadata onto ``Metadata``."""
        meta = self.metadata
        meta.title = _first_dc_value(book, "title")
        meta.author = _first_dc_value(book, "creator")
        meta.publisher = _first_dc_value(book, "publisher")
        meta.description = _first_dc_value(book, "description")
        meta.language = _first_dc_value(book, "language")
        meta.publication_date = _first_dc_value(book, "date")
        # Generated book ids are not ISBNs
        meta.isbn = next(
            (
                value
                for value in _dc_values(book, "identifier")
                if not value.startswith("urn:uuid:")
            ),
            None,
        )
        meta.tags = _dc_values(book, "subject") or None

    def _read_chapters(self, book: epub.EpubBook) -> None:
        for index, (idref, _) in enumerate(book.spine):
            item = book.get_item_with_id(idref)
            if item is None:
                log.debug("Spine item %s missing from manifest", idref)
                continue

            # The stored document; EpubHtml.get_content() would rebuild it
            content = item.content.decode("utf-8", errors="replace")
            title = self.processor.extract_title(content) or f"Chapter {index + 1}"
            self._chapters.append(
                Chapter(title=title, content=content, filename=item.file_name)
            )

    def _read_cover(self, book: epub.EpubBook) -> None:
        cover_id = _cover_id(book)
        item = book.get_item_with_id(cover_id) if cover_id else None
        if item is None:
            # EPUB 3 marks the cover image in the manifest instead
            item = next(book.get_items_of_type(ebooklib.ITEM_COVER), None)
        if item is None:
            return
        self.metadata.cover_image_path = item.file_name
        self.metadata.cover_image = item.content

    def _read_images(self, archive: zipfile.ZipFile) -> None:
        # Every image-like entry counts, referenced or not
        for info in archive.infolist():
            if info.is_dir() or not info.filename.lower().endswith(IMAGE_EXTENSIONS):
                continue
            self._images.append(
                ImageData(
                    name=info.filename,
                    mime_type=guess_mime_type(info.filename),
                    data=archive.read(info),
                )
            )

    def get_content(self) -> str:
        if self._content:
            return self._content
        return CHAPTER_SEPARATOR.join(
            self.processor.to_plain_text(chapter.content)
            if self.processor.is_markup_document(chapter.content)
            else chapter.content
            for chapter in self._chapters
        )

    def get_toc(self) -> list[TocEntry]:
        return [
            TocEntry(id=index, title=chapter.title, level=1, href=chapter.filename)
            for index, chapter in enumerate(self._chapters)
        ]

    def extract_images(self) -> list[ImageData]:
        return [image.model_copy(deep=True) for image in self._images]

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def set_content(self, content: str) -> None:
        self._content = content

    def add_chapter(self, title: str, content: str) -> None:
        existing = {chapter.filename for chapter in self._chapters}
        number = len(self._chapters) + 1
        while f"chapter{number}.xhtml" in existing:
            number += 1
        self._chapters.append(
            Chapter(title=title, content=content, filename=f"chapter{number}.xhtml")
        )

    def add_image(self, name: str, data: bytes) -> None:
        self._images.append(
            ImageData(name=name, mime_type=guess_mime_type(name), data=data)
        )

    def _chapters_for_writing(self) -> list[Chapter]:
        if self._chapters:
            return self._chapters

        pieces = [p for p in self._content.split(CHAPTER_SEPARATOR) if p.strip()]
        return [
            Chapter(
                title=f"Chapter {number}",
                content=piece,
                filename=f"chapter{number}.xhtml",
            )
            for number, piece in enumerate(pieces, start=1)
        ]

    def _image_href(self, name: str) -> str:
        """Image path relative to the package document.

        Names read from a book are archive paths under the package directory
        of that book, which is not always ``OEBPS``.
        """
        for directory in dict.fromkeys((self._opf_dir, CONTENT_DIR)):
            if directory and name.startswith(f"{directory}/"):
                return name[len(directory) + 1:]
        return name

    def write_to_file(self, path: Path) -> None:
        path = Path(path)
        ensure_parent_dir(path)
        log.info("Writing EPUB file: %s (version: %s)", path, self.version.value)

        chapters = self._chapters_for_writing()
        book_id = f"urn:uuid:{uuid.uuid4()}"
        log.debug("Writing %d chapters and %d images", len(chapters), len(self._images))

        with open_archive(path, "w") as archive:
            # mimetype must be the first entry and must not be compressed
            write_entry(archive, "mimetype", MIMETYPE, compress=False)
            write_entry(archive, CONTAINER_PATH, CONTAINER_XML)
            write_entry(
                archive, f"{CONTENT_DIR}/content.opf", self._build_opf(chapters, book_id)
            )
            write_entry(
                archive, f"{CONTENT_DIR}/toc.ncx", self._build_ncx(chapters, book_id)
            )
            if self.version == EpubVersion.V3:
                write_entry(archive, f"{CONTENT_DIR}/nav.xhtml", self._build_nav(chapters))

            for chapter in chapters:
                write_entry(
                    archive,
                    f"{CONTENT_DIR}/{chapter.filename}",
                    self._chapter_document(chapter),
                )
            for image in self._images:
                write_entry(
                    archive, f"{CONTENT_DIR}/{self._image_href(image.name)}", image.data
                )

    def _chapter_document(self, chapter: Chapter) -> str:
        if self.processor.is_markup_document(chapter.content):
            return chapter.content
        return self.processor.text_to_xhtml(chapter.title, chapter.content)

    def _build_opf(self, chapters: list[Chapter], book_id: str) -> str:
        meta = self.metadata
        title = _escape(meta.title or "Untitled")
        author = _escape(meta.author or "Unknown")
        language = _escape(meta.language or "en")

        dc_lines = [
            f"    <dc:title>{title}</dc:title>",
            f"    <dc:creator>{author}</dc:creator>",
            f"    <dc:language>{language}</dc:language>",
        ]
        if meta.isbn:
            dc_lines.append(f'    <dc:identifier id="isbn">{_escape(meta.isbn)}</dc:identifier>')
        dc_lines.append(f'    <dc:identifier id="BookID">{book_id}</dc:identifier>')
        if meta.publisher:
            dc_lines.append(f"    <dc:publisher>{_escape(meta.publisher)}</dc:publisher>")
        if meta.description:
            dc_lines.append(f"    <dc:description>{_escape(meta.description)}</dc:description>")
        if meta.publication_date:
            dc_lines.append(f"    <dc:date>{_escape(meta.publication_date)}</dc:date>")
        for tag in meta.tags or []:
            dc_lines.append(f"    <dc:subject>{_escape(tag)}</dc:subject>")

        manifest_lines = []
        if self.version == EpubVersion.V3:
            manifest_lines.append(
                '    <item id="nav" href="nav.xhtml" '
                'media-type="application/xhtml+xml" properties="nav"/>'
            )
        manifest_lines.append(
            '    <item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>'
        )
        for index, chapter in enumerate(chapters):
            manifest_lines.append(
                f'    <item id="ch{index}" href="{_escape(chapter.filename)}" '
                'media-type="application/xhtml+xml"/>'
            )
        for index, image in enumerate(self._images):
            manifest_lines.append(
                f'    <item id="img{index}" href="{_escape(self._image_href(image.name))}" '
                f'media-type="{image.mime_type}"/>'
            )

        spine_lines = [
            f'    <itemref idref="ch{index}"/>' for index in range(len(chapters))
        ]

        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            f'<package xmlns="{OPF_NAMESPACE}" '
            f'version="{self.version.value}" unique-identifier="BookID">\n'
            '  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">\n'
            + "\n".join(dc_lines)
            + "\n  </metadata>\n  <manifest>\n"
            + "\n".join(manifest_lines)
            + '\n  </manifest>\n  <spine toc="ncx">\n'
            + "\n".join(spine_lines)
            + "\n  </spine>\n</package>\n"
        )

    def _build_ncx(self, chapters: list[Chapter], book_id: str) -> str:
        nav_points = "".join(
            f"""
    <navPoint id="navPoint-{index}" playOrder="{index + 1}">
      <navLabel>
        <text>{_escape(chapter.title)}</text>
      </navLabel>
      <content src="{_escape(chapter.filename)}"/>
    </navPoint>"""
            for index, chapter in enumerate(chapters)
        )
        return f"""<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <head>
    <meta name="dtb:uid" content="{book_id}"/>
    <meta name="dtb:depth" content="1"/>
    <meta name="dtb:totalPageCount" content="0"/>
    <meta name="dtb:maxPageNumber" content="0"/>
  </head>
  <docTitle>
    <text>{_escape(self.metadata.title or "Untitled")}</text>
  </docTitle>
  <navMap>{nav_points}
  </navMap>
</ncx>
"""

    def _build_nav(self, chapters: list[Chapter]) -> str:
        items = "".join(
            f'            <li><a href="{_escape(chapter.filename)}">'
            f"{_escape(chapter.title)}</a></li>\n"
            for chapter in chapters
        )
        return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops">
<head>
    <title>Navigation</title>
</head>
<body>
    <nav epub:type="toc" id="toc">
        <h1>Table of Contents</h1>
        <ol>
{items}        </ol>
    </nav>
</body>
</html>
"""

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def convert_to(self, target_format: str, output_path: Path) -> None:
        if target_format.lower() not in ("md", "markdown"):
            super().convert_to(target_format, output_path)
            return

        output_path = Path(output_path)
        ensure_parent_dir(output_path)
        parts = [f"# {self.metadata.title or 'Untitled'}"]
        for chapter in self._chapters_for_writing():
            parts.append(self.processor.to_markdown(self._chapter_document(chapter)))
        try:
            output_path.write_text("\n\n".join(parts) + "\n", encoding="utf-8")
        except OSError as e:
            raise EbookIOError(f"{output_path}: {e}") from e

    def validate(self) -> bool:
        return self.metadata.title is not None

    def optimize_images(self, options: OptimizationOptions | None = None) -> int:
        """Recompress bundled images, returning the number of bytes saved."""
        return optimize_images(self._images, options)
