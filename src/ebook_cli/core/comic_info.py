"""ComicInfo.xml parsing and serialization."""

import io
import logging

from lxml import etree

from ebook_cli.core.content_processor import xml_safe
from ebook_cli.errors import XmlError
from ebook_cli.models.comic import ComicInfo

log = logging.getLogger(__name__)

COMIC_INFO_NAME = "ComicInfo.xml"

XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
XSD_NAMESPACE = "http://www.w3.org/2001/XMLSchema"

# Element name -> ComicInfo field, in the order elements are written
ELEMENT_FIELDS = {
    "Title": "title",
    "Series": "series",
    "Number": "number",
    "Volume": "volume",
    "Summary": "summary",
    "Publisher": "publisher",
    "Writer": "writer",
    "Penciller": "penciller",
    "Inker": "inker",
    "Colorist": "colorist",
    "Letterer": "letterer",
    "CoverArtist": "cover_artist",
    "Editor": "editor",
    "Year": "year",
    "Month": "month",
    "Day": "day",
    "LanguageISO": "language_iso",
    "PageCount": "page_count",
    "Genre": "genre",
    "Tags": "tags",
    "Web": "web",
}


def split_tags(text: str) -> list[str]:
    return [tag.strip() for tag in text.split(",") if tag.strip()]


def parse_page_count(text: str) -> int | None:
    """Return a non-negative ASCII integer, or None for anything else."""
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


def parse_comic_info(data: bytes | str) -> ComicInfo:
    """Parse ComicInfo.xml content element by element.

    Unknown elements are ignored. A ``PageCount`` that is not a
    non-negative integer is dropped rather than failing the parse.

    Raises:
        XmlError: If the document is not well-formed XML.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")

    fields: dict = {}
    try:
        for _, element in etree.iterparse(io.BytesIO(data), events=("end",)):
            if not isinstance(element.tag, str):
                continue
            name = etree.QName(element).localname
            field = ELEMENT_FIELDS.get(name)
            text = (element.text or "").strip()
            if field is None or not text:
                continue

            if field == "page_count":
                page_count = parse_page_count(text)
                if page_count is None:
                    log.debug("Ignoring invalid PageCount: %r", text)
                else:
                    fields[field] = page_count
            elif field == "tags":
                fields.setdefault("tags", []).extend(split_tags(text))
            else:
                fields[field] = text
    except etree.XMLSyntaxError as e:
        raise XmlError(f"ComicInfo.xml: {e}") from e

    return ComicInfo(**fields)


def comic_info_to_xml(info: ComicInfo) -> bytes:
    """Serialize comic info; absent fields and empty tag lists are omitted."""
    root = etree.Element("ComicInfo", nsmap={"xsi": XSI_NAMESPACE, "xsd": XSD_NAMESPACE})

    for name, field in ELEMENT_FIELDS.items():
        value = getattr(info, field)
        if field == "tags":
            value = ", ".join(value) if value else None
        if value is None:
            continue
        etree.SubElement(root, name).text = xml_safe(str(value))

    return etree.tostring(root, xml_declaration=True, encoding="utf-8", pretty_print=True)
