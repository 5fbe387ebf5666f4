"""CBZ (zipped comic pages + ComicInfo.xml) reading and writing."""

import logging
from pathlib import Path

from ebook_cli.core.archive import open_archive, write_entry
from ebook_cli.core.comic_info import COMIC_INFO_NAME, comic_info_to_xml, parse_comic_info
from ebook_cli.core.format_detector import guess_mime_type
from ebook_cli.core.handler import EbookOperator, ensure_parent_dir
from ebook_cli.core.image_optimizer import OptimizationOptions, optimize_images
from ebook_cli.errors import XmlError
from ebook_cli.models.book import ImageData, Metadata, TocEntry
from ebook_cli.models.comic import ComicInfo

log = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")


class CbzHandler(EbookOperator):
    """Comic archives: pages are images ordered by archive name."""

    FORMAT = "cbz"
    DEFAULT_TITLE = "Untitled Comic"

    def __init__(self) -> None:
        super().__init__()
        self.comic_info: ComicInfo | None = None
        self._images: list[ImageData] = []

    def read_from_file(self, path: Path) -> None:
        path = Path(path)
        log.info("Reading CBZ file: %s", path)

        self.metadata = Metadata()
        self.comic_info = None
        self._images = []

        with open_archive(path) as archive:
            names = archive.namelist()
            if COMIC_INFO_NAME in names:
                try:
                    self.comic_info = parse_comic_info(archive.read(COMIC_INFO_NAME))
                    self.metadata = self.comic_info.to_metadata()
                except XmlError as e:
                    log.warning("Ignoring unreadable %s: %s", COMIC_INFO_NAME, e.message)

            for name in names:
                if name == COMIC_INFO_NAME or not name.lower().endswith(IMAGE_EXTENSIONS):
                    continue
                self._images.append(
                    ImageData(name=name, mime_type=guess_mime_type(name), data=archive.read(name))
                )

        # Name order is page order
        self._images.sort(key=lambda image: image.name)
        log.debug("CBZ archive holds %d pages", len(self._images))

        if self.metadata.title is None:
            self.metadata.title = path.stem
        self.metadata.format = "CBZ"
        if self.comic_info is not None:
            self.comic_info.page_count = len(self._images)

    def get_content(self) -> str:
        return f"CBZ archive with {len(self._images)} images"

    def get_toc(self) -> list[TocEntry]:
        return []

    def extract_images(self) -> list[ImageData]:
        return [image.model_copy(deep=True) for image in self._images]

    def set_content(self, content: str) -> None:
        # Comics carry no flowing text
        pass

    def add_chapter(self, title: str, content: str) -> None:
        pass

    def add_image(self, name: str, data: bytes) -> None:
        self._images.append(ImageData(name=name, mime_type=guess_mime_type(name), data=data))

    def build_comic_info(self) -> ComicInfo:
        """ComicInfo to write: the parsed one updated from metadata, or a fresh one."""
        fresh = ComicInfo.from_metadata(self.metadata)
        if self.comic_info is None:
            info = fresh
        else:
            # Keep roles and series data that Metadata cannot express
            updates = {
                field: value
                for field, value in fresh.model_dump().items()
                if value is not None and value != []
            }
            info = self.comic_info.model_copy(update=updates)
        info.page_count = len(self._images)
        return info

    def write_to_file(self, path: Path) -> None:
        path = Path(path)
        ensure_parent_dir(path)
        log.info("Writing CBZ file: %s (%d pages)", path, len(self._images))

        with open_archive(path, "w") as archive:
            write_entry(archive, COMIC_INFO_NAME, comic_info_to_xml(self.build_comic_info()))
            for image in self._images:
                write_entry(archive, image.name, image.data)

    def validate(self) -> bool:
        return bool(self._images)

    def optimize_images(self, options: OptimizationOptions | None = None) -> int:
        """Recompress pages, returning the number of bytes saved."""
        return optimize_images(self._images, options)
