"""FictionBook 2 reading and writing."""

import base64
import binascii
import logging
from pathlib import Path

from lxml import etree

from ebook_cli.core.content_processor import xml_safe
from ebook_cli.core.format_detector import guess_mime_type
from ebook_cli.core.handler import EbookOperator, ensure_parent_dir
from ebook_cli.errors import EbookIOError, XmlError
from ebook_cli.models.book import ImageData, Metadata, TocEntry

log = logging.getLogger(__name__)

FB2_NAMESPACE = "http://www.gribuser.ru/xml/fictionbook/2.0"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"

NAME_PARTS = ("first-name", "middle-name", "last-name")


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def _text_of(element: etree._Element) -> str:
    return "".join(element.itertext()).strip()


def _sub(parent: etree._Element, tag: str, text: str | None = None, **attrib) -> etree._Element:
    element = etree.SubElement(parent, f"{{{FB2_NAMESPACE}}}{tag}", **attrib)
    if text is not None:
        element.text = xml_safe(text)
    return element


def split_author(author: str) -> tuple[str, str | None]:
    """Split a display name into FB2 first-name and last-name parts."""
    parts = author.strip().rsplit(" ", 1)
    if len(parts) == 1:
        return parts[0], None
    return parts[0], parts[1]


def split_paragraphs(content: str) -> list[str]:
    """Every newline becomes a paragraph break; one trailing newline is dropped."""
    if content.endswith("\n"):
        content = content[:-1]
    return content.split("\n")


class Fb2Handler(EbookOperator):
    """Read and write FictionBook 2 XML."""

    FORMAT = "fb2"

    def __init__(self) -> None:
        super().__init__()
        self._content = ""
        self._sections: list[tuple[str, str]] = []
        self._toc: list[TocEntry] = []
        self._images: list[ImageData] = []

    def read_from_file(self, path: Path) -> None:
        path = Path(path)
        log.info("Reading FB2 file: %s", path)
        try:
            with open(path, "rb") as f:
                self._parse(f)
        except etree.XMLSyntaxError as e:
            raise XmlError(f"{path}: {e}") from e
        except OSError as e:
            raise EbookIOError(f"{path}: {e}") from e

    def _parse(self, source) -> None:
        """Single pass over the document, tracking title-info and body regions.

        Paragraphs inside a body <title> are headings, not content. Titled
        sections become TOC entries, nested sections one level deeper.
        """
        self.metadata = Metadata()
        self._sections = []
        self._toc = []
        self._images = []

        paragraphs: list[str] = []
        authors: list[str] = []
        name_parts: list[str] = []
        tags: list[str] = []
        in_title_info = False
        in_publish_info = False
        body_depth = 0
        section_depth = 0
        title_depth = 0
        title_parts: list[str] = []

        for event, element in etree.iterparse(source, events=("start", "end")):
            if not isinstance(element.tag, str):
                continue
            name = _local_name(element)

            if event == "start":
                if name == "title-info":
                    in_title_info = True
                elif name == "publish-info":
                    in_publish_info = True
                elif name == "body":
                    body_depth += 1
                elif body_depth and name == "section":
                    section_depth += 1
                elif body_depth and name == "title":
                    title_depth += 1
                continue

            if name == "title-info":
                in_title_info = False
            elif name == "publish-info":
                in_publish_info = False
            elif name == "body":
                body_depth -= 1
            elif body_depth and name == "section":
                section_depth -= 1
            elif body_depth and name == "title":
                title_depth -= 1
                if not title_depth and section_depth and title_parts:
                    self._toc.append(
                        TocEntry(id=len(self._toc), title=" ".join(title_parts), level=section_depth)
                    )
                title_parts = []
            elif body_depth and name == "p":
                text = _text_of(element)
                if not title_depth:
                    paragraphs.append(text)
                elif text:
                    title_parts.append(text)
            elif in_title_info:
                text = _text_of(element)
                if name == "book-title":
                    self.metadata.title = text
                elif name in NAME_PARTS and text:
                    name_parts.append(text)
                elif name == "author":
                    if name_parts:
                        authors.append(" ".join(name_parts))
                    name_parts = []
                elif name == "lang":
                    self.metadata.language = text
                elif name == "genre" and text:
                    tags.append(text)
                elif name == "date":
                    self.metadata.publication_date = element.get("value") or text
                elif name == "annotation":
                    self.metadata.description = text
            elif in_publish_info:
                if name == "publisher":
                    self.metadata.publisher = _text_of(element)
                elif name == "isbn":
                    self.metadata.isbn = _text_of(element)
            elif name == "binary":
                self._read_binary(element)

        self._content = "".join(paragraph + "\n" for paragraph in paragraphs)
        if authors:
            self.metadata.author = ", ".join(authors)
        if tags:
            self.metadata.tags = tags
        self.metadata.format = "FB2"

    def _read_binary(self, element: etree._Element) -> None:
        image_id = element.get("id")
        if not image_id:
            return
        try:
            data = base64.b64decode(element.text or "")
        except (binascii.Error, ValueError) as e:
            log.warning("Skipping undecodable FB2 binary %s: %s", image_id, e)
            return
        mime_type = element.get("content-type") or guess_mime_type(image_id)
        self._images.append(ImageData(name=image_id, mime_type=mime_type, data=data))

    def get_content(self) -> str:
        return self._content

    def get_toc(self) -> list[TocEntry]:
        if not self._sections:
            return [entry.model_copy() for entry in self._toc]
        return [
            TocEntry(id=index, title=title, level=1)
            for index, (title, _) in enumerate(self._sections)
        ]

    def extract_images(self) -> list[ImageData]:
        return [image.model_copy(deep=True) for image in self._images]

    def set_content(self, content: str) -> None:
        self._content = content

    def add_chapter(self, title: str, content: str) -> None:
        self._sections.append((title, content))

    def add_image(self, name: str, data: bytes) -> None:
        self._images.append(ImageData(name=name, mime_type=guess_mime_type(name), data=data))

    def _build_description(self, root: etree._Element) -> None:
        meta = self.metadata
        description = _sub(root, "description")
        title_info = _sub(description, "title-info")
        for genre in meta.tags or []:
            _sub(title_info, "genre", genre)

        author = _sub(title_info, "author")
        first_name, last_name = split_author(meta.author or "Unknown")
        _sub(author, "first-name", first_name)
        if last_name:
            _sub(author, "last-name", last_name)

        _sub(title_info, "book-title", meta.title or self.DEFAULT_TITLE)
        if meta.description:
            annotation = _sub(title_info, "annotation")
            _sub(annotation, "p", meta.description)
        if meta.publication_date:
            _sub(title_info, "date", meta.publication_date)
        _sub(title_info, "lang", meta.language or "en")

        if meta.publisher or meta.isbn:
            publish_info = _sub(description, "publish-info")
            if meta.publisher:
                _sub(publish_info, "publisher", meta.publisher)
            if meta.isbn:
                _sub(publish_info, "isbn", meta.isbn)

    def _build_body(self, root: etree._Element) -> None:
        body = _sub(root, "body")
        sections = self._sections or [(None, self._content)]
        for title, content in sections:
            section = _sub(body, "section")
            if title:
                _sub(_sub(section, "title"), "p", title)
            for paragraph in split_paragraphs(content):
                _sub(section, "p", paragraph)

    def to_xml(self) -> bytes:
        root = etree.Element(
            f"{{{FB2_NAMESPACE}}}FictionBook",
            nsmap={None: FB2_NAMESPACE, "l": XLINK_NAMESPACE},
        )
        self._build_description(root)
        self._build_body(root)
        for image in self._images:
            binary = _sub(root, "binary", id=image.name)
            binary.set("content-type", image.mime_type)
            binary.text = base64.b64encode(image.data).decode("ascii")
        return etree.tostring(root, xml_declaration=True, encoding="UTF-8", pretty_print=True)

    def write_to_file(self, path: Path) -> None:
        path = Path(path)
        ensure_parent_dir(path)
        log.info("Writing FB2 file: %s", path)
        try:
            path.write_bytes(self.to_xml())
        except OSError as e:
            raise EbookIOError(f"{path}: {e}") from e

    def validate(self) -> bool:
        return self.metadata.title is not None
