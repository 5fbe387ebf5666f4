"""
Tests for the plain text handler.

Tests cover:
- Encoding fallback chain with windows-1252 for undefined bytes
- File-name title and chapter-line TOC
- Chunked reading and writing match the whole-file paths
- read_from_file and write_to_file switch to chunks at the size threshold
- Markdown shortcut conversion, validate and repair
"""

import pytest

from ebook_cli.core import txt_handler
from ebook_cli.core.txt_handler import TxtHandler, decode_bytes
from ebook_cli.errors import EbookIOError, NotSupportedError
from ebook_cli.models.book import Metadata


class TestDecoding:
    """UTF-8, then windows-1252"""

    def test_utf8(self):
        assert decode_bytes("naïve ☃".encode("utf-8")) == "naïve ☃"

    def test_cp1252_fallback(self):
        assert decode_bytes("café “quoted”".encode("cp1252")) == "café “quoted”"

    def test_undefined_cp1252_bytes_become_c1_controls(self):
        # 0x81 0x8D 0x8F 0x90 0x9D have no cp1252 glyph
        assert decode_bytes(b"a\x81b") == "a\x81b"
        assert decode_bytes(b"\x93quoted\x94 \x8d\x8f\x90\x9d") == "\u201cquoted\u201d \x8d\x8f\x90\x9d"

    def test_no_replacement_characters(self):
        data = bytes(range(256))
        text = decode_bytes(data)

        assert "\ufffd" not in text
        assert len(text) == 256


class TestRead:
    """Reading text files"""

    def test_title_is_file_stem(self, sample_txt):
        handler = TxtHandler()
        handler.read_from_file(sample_txt)
        metadata = handler.get_metadata()

        assert metadata.title == "Sample Book"
        assert metadata.format == "TXT"
        assert metadata.author is None

    def test_toc_from_chapter_lines(self, sample_txt):
        handler = TxtHandler()
        handler.read_from_file(sample_txt)
        toc = handler.get_toc()

        assert [entry.title for entry in toc] == ["Chapter 1", "Chapter 2"]
        assert [entry.id for entry in toc] == [0, 1]
        assert all(entry.level == 1 for entry in toc)

    def test_content_verbatim(self, sample_txt):
        handler = TxtHandler()
        handler.read_from_file(sample_txt)
        assert handler.get_content() == sample_txt.read_text(encoding="utf-8")
        assert handler.extract_images() == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(EbookIOError):
            TxtHandler().read_from_file(tmp_path / "missing.txt")


class TestStreaming:
    """Chunked paths give the same result as whole-file paths"""

    @pytest.fixture
    def small_chunks(self, monkeypatch):
        monkeypatch.setattr(txt_handler, "STREAMING_THRESHOLD", 8)
        monkeypatch.setattr(txt_handler, "CHUNK_SIZE", 3)

    def test_streaming_read_matches_plain_read(self, sample_txt):
        plain = TxtHandler()
        plain.read_from_file(sample_txt)
        streamed = TxtHandler()
        streamed.read_from_file_streaming(sample_txt)

        assert streamed.get_content() == plain.get_content()
        assert streamed.get_metadata() == plain.get_metadata()

    def test_multibyte_split_across_chunks(self, tmp_path, small_chunks):
        path = tmp_path / "utf8.txt"
        text = "ééé ☃☃ snow\n" * 5
        path.write_bytes(text.encode("utf-8"))

        handler = TxtHandler()
        handler.read_from_file_streaming(path)
        assert handler.get_content() == text
        assert handler.get_metadata().title == "utf8"

    def test_cp1252_fallback_when_streaming(self, tmp_path, small_chunks):
        path = tmp_path / "legacy.txt"
        path.write_bytes("café au lait".encode("cp1252"))

        handler = TxtHandler()
        handler.read_from_file_streaming(path)
        assert handler.get_content() == "café au lait"

    def test_streaming_write_matches(self, tmp_path, small_chunks):
        handler = TxtHandler()
        handler.set_content("ünïcödé text " * 10)
        handler.write_to_file(tmp_path / "plain.txt")
        handler.write_to_file_streaming(tmp_path / "nested" / "streamed.txt")

        assert (tmp_path / "nested" / "streamed.txt").read_bytes() == (tmp_path / "plain.txt").read_bytes()

    def test_undefined_cp1252_byte_when_streaming(self, tmp_path, small_chunks):
        path = tmp_path / "legacy.txt"
        path.write_bytes(b"caf\xe9 \x81 au lait")

        handler = TxtHandler()
        handler.read_from_file_streaming(path)
        assert handler.get_content() == "café \x81 au lait"

    def test_read_switches_to_chunks_at_threshold(self, tmp_path, small_chunks, monkeypatch):
        calls = []
        original = txt_handler._decode_file

        def counting_decode(f, encoding, errors):
            calls.append(encoding)
            return original(f, encoding, errors)

        monkeypatch.setattr(txt_handler, "_decode_file", counting_decode)
        small = tmp_path / "small.txt"
        small.write_bytes(b"tiny")
        large = tmp_path / "large.txt"
        large.write_bytes("ééé ☃☃ snow\n".encode("utf-8") * 5)

        handler = TxtHandler()
        handler.read_from_file(small)
        assert calls == []
        assert handler.get_content() == "tiny"

        handler.read_from_file(large)
        assert calls == ["utf-8"]
        assert handler.get_content() == "ééé ☃☃ snow\n" * 5
        assert handler.get_metadata().title == "large"

    def test_write_switches_to_chunks_at_threshold(self, tmp_path, small_chunks, monkeypatch):
        written = []
        original = TxtHandler._write_chunked

        def recording_write(self, path):
            written.append(path.name)
            original(self, path)

        monkeypatch.setattr(TxtHandler, "_write_chunked", recording_write)
        handler = TxtHandler()
        handler.set_content("short")
        handler.write_to_file(tmp_path / "short.txt")
        handler.set_content("ünïcödé text " * 10)
        handler.write_to_file(tmp_path / "long.txt")

        assert written == ["long.txt"]
        assert (tmp_path / "short.txt").read_bytes() == b"short"
        assert (tmp_path / "long.txt").read_bytes() == ("ünïcödé text " * 10).encode("utf-8")

    def test_streaming_missing_file(self, tmp_path):
        with pytest.raises(EbookIOError):
            TxtHandler().read_from_file_streaming(tmp_path / "missing.txt")


class TestWriteAndOperations:
    """Writing, conversion shortcut, validate and repair"""

    def test_write_utf8(self, tmp_path):
        handler = TxtHandler()
        handler.set_content("Grüße")
        path = tmp_path / "out.txt"
        handler.write_to_file(path)
        assert path.read_bytes() == "Grüße".encode("utf-8")

    def test_round_trip(self, tmp_path):
        writer = TxtHandler()
        writer.set_metadata(Metadata(title="Test Book", author="Test Author"))
        writer.set_content("Hello\nWorld\n")
        path = tmp_path / "Test Book.txt"
        writer.write_to_file(path)

        reader = TxtHandler()
        reader.read_from_file(path)
        assert reader.get_metadata().title == "Test Book"
        assert reader.get_metadata().format == "TXT"
        assert reader.get_content() == "Hello\nWorld\n"

    def test_add_chapter(self):
        handler = TxtHandler()
        handler.set_content("Intro")
        handler.add_chapter("Chapter 1", "Body")
        assert handler.get_content() == "Intro\n\nChapter 1\n\nBody"

    def test_convert_to_markdown(self, sample_txt, tmp_path):
        handler = TxtHandler()
        handler.read_from_file(sample_txt)
        output = tmp_path / "out.md"
        handler.convert_to("md", output)

        assert output.read_text(encoding="utf-8").startswith("# Sample Book\n\nChapter 1\n")

    def test_convert_to_other_formats_not_supported(self, tmp_path):
        with pytest.raises(NotSupportedError):
            TxtHandler().convert_to("pdf", tmp_path / "out.pdf")

    def test_validate_and_repair(self):
        handler = TxtHandler()
        handler.set_content("   \n  ")
        assert handler.validate() is True

        handler.repair()
        assert handler.get_content() == ""
        assert handler.validate() is False
        assert handler.get_metadata().title == "Untitled"
