"""Shared fixtures for handler, converter and CLI tests."""

import io
import struct
import zipfile

import pytest
from PIL import Image


def make_image_bytes(size=(64, 48), fmt="PNG", color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, fmt)
    return buffer.getvalue()


def make_mobi_bytes(
    title: bytes = b"Full Title",
    text: bytes = b"Hello MOBI",
    language_id: int = 2,
    header_length: int = 232,
) -> bytes:
    """Build a file with a MOBI header at offset 60 followed by text."""
    data = bytearray(60 + header_length)
    data[0:8] = b"palmname"
    data[60:64] = b"MOBI"
    struct.pack_into(">I", data, 64, header_length)
    struct.pack_into(">I", data, 68, 2)
    struct.pack_into(">I", data, 76, 65001)
    struct.pack_into(">I", data, 136, 5)
    data[148] = len(title)
    data[152:152 + len(title)] = title
    struct.pack_into(">H", data, 168, language_id)
    return bytes(data) + text


def make_legacy_mobi_bytes(title: bytes, text: bytes) -> bytes:
    header = bytearray(78)
    header[:len(title)] = title
    return bytes(header) + text


@pytest.fixture
def png_bytes():
    return make_image_bytes()


@pytest.fixture
def large_png_bytes():
    return make_image_bytes(size=(800, 400))


@pytest.fixture
def sample_txt(tmp_path):
    path = tmp_path / "Sample Book.txt"
    path.write_text("Chapter 1\nIt begins.\n\nChapter 2\nIt ends.\n", encoding="utf-8")
    return path


@pytest.fixture
def epub_factory(tmp_path):
    """Write a small hand-made EPUB and return its path."""

    def _make(
        name="book.epub",
        opf_dir="OEBPS",
        chapters=None,
        extra_files=None,
        metadata_xml=None,
        extra_manifest="",
    ):
        chapters = chapters or [
            ("ch1.xhtml", "<html><head><title>One</title></head><body><h1>First</h1><p>Alpha</p></body></html>"),
            ("ch2.xhtml", "<html><body><p>Beta</p></body></html>"),
        ]
        metadata_xml = metadata_xml or (
            "<dc:title>Hand Made</dc:title>"
            "<dc:creator>Jane Doe</dc:creator>"
            "<dc:language>en</dc:language>"
            "<dc:identifier id=\"isbn\">978-3-16-148410-0</dc:identifier>"
            "<dc:subject>Fiction</dc:subject>"
            "<dc:subject>Test</dc:subject>"
        )
        manifest = "".join(
            f'<item id="c{i}" href="{href}" media-type="application/xhtml+xml"/>'
            for i, (href, _) in enumerate(chapters)
        ) + extra_manifest
        spine = "".join(f'<itemref idref="c{i}"/>' for i in range(len(chapters)))
        opf = (
            '<?xml version="1.0"?>'
            '<package xmlns="http://www.idpf.org/2007/opf" version="3.0">'
            '<metadata xmlns:dc="http://purl.org/dc/elements/1.1/">'
            f"{metadata_xml}</metadata>"
            f"<manifest>{manifest}</manifest>"
            f"<spine>{spine}</spine>"
            "</package>"
        )
        container = (
            '<?xml version="1.0"?>'
            '<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">'
            f'<rootfiles><rootfile full-path="{opf_dir}/content.opf" '
            'media-type="application/oebps-package+xml"/></rootfiles></container>'
        )

        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
            archive.writestr("META-INF/container.xml", container)
            archive.writestr(f"{opf_dir}/content.opf", opf)
            for href, body in chapters:
                archive.writestr(f"{opf_dir}/{href}", body)
            for entry_name, data in (extra_files or {}).items():
                archive.writestr(entry_name, data)
        return path

    return _make
