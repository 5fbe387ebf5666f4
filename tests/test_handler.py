"""
Tests for the shared handler contracts.

Tests cover:
- Byte and stream adapters built on temporary files
- Temporary file naming under concurrency
- Default metadata repair
"""

import io
import threading

import pytest

from ebook_cli.core.handler import (
    TempFileNamer,
    read_from_bytes,
    read_from_stream,
    write_to_stream,
)
from ebook_cli.core.txt_handler import TxtHandler
from ebook_cli.models.book import Metadata


class TestTempFileNamer:
    """Collision-free temporary paths"""

    def test_deterministic_name(self, tmp_path):
        namer = TempFileNamer(directory=tmp_path, clock=lambda: 1234, pid=lambda: 42)

        assert namer.next_path("ebook_temp_read") == tmp_path / "ebook_temp_read_42_1234_0.tmp"
        assert namer.next_path("ebook_temp_read") == tmp_path / "ebook_temp_read_42_1234_1.tmp"

    def test_unique_across_threads(self, tmp_path):
        namer = TempFileNamer(directory=tmp_path, clock=lambda: 0, pid=lambda: 1)
        paths = []
        lock = threading.Lock()

        def worker():
            for _ in range(100):
                path = namer.next_path("t")
                with lock:
                    paths.append(path)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(paths) == 800
        assert len(set(paths)) == 800


class TestStreamAdapters:
    """read_from_bytes, read_from_stream and write_to_stream"""

    def test_read_from_bytes(self, tmp_path):
        namer = TempFileNamer(directory=tmp_path)
        handler = TxtHandler()

        read_from_bytes(handler, b"from bytes", namer=namer)

        assert handler.get_content() == "from bytes"
        assert list(tmp_path.iterdir()) == []

    def test_read_from_stream(self, tmp_path):
        handler = TxtHandler()
        read_from_stream(handler, io.BytesIO("strömed".encode("utf-8")), namer=TempFileNamer(tmp_path))

        assert handler.get_content() == "strömed"
        assert list(tmp_path.iterdir()) == []

    def test_write_to_stream(self, tmp_path):
        handler = TxtHandler()
        handler.set_content("to the sink")
        sink = io.BytesIO()

        write_to_stream(handler, sink, namer=TempFileNamer(tmp_path))

        assert sink.getvalue() == b"to the sink"
        assert list(tmp_path.iterdir()) == []

    def test_temp_file_removed_when_read_fails(self, tmp_path):
        class FailingHandler(TxtHandler):
            def read_from_file(self, path):
                raise ValueError("boom")

        with pytest.raises(ValueError):
            read_from_bytes(FailingHandler(), b"x", namer=TempFileNamer(tmp_path))
        assert list(tmp_path.iterdir()) == []


class TestRepair:
    def test_default_repair_trims_and_fills(self):
        handler = TxtHandler()
        handler.set_metadata(Metadata(title="   ", author="  Ann  "))
        handler.repair()

        metadata = handler.get_metadata()
        assert metadata.title == "Untitled"
        assert metadata.author == "Ann"

    def test_metadata_is_copied(self):
        handler = TxtHandler()
        original = Metadata(title="T", tags=["a"])
        handler.set_metadata(original)
        original.tags.append("b")

        returned = handler.get_metadata()
        returned.tags.append("c")
        assert handler.get_metadata().tags == ["a"]
