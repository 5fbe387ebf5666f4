"""Data model for ComicInfo.xml (ComicRack schema subset)."""

from pydantic import BaseModel, Field

from ebook_cli.models.book import Metadata


class ComicInfo(BaseModel):
    """Comic book metadata as stored in ComicInfo.xml."""

    title: str | None = None
    series: str | None = None
    number: str | None = None
    volume: str | None = None
    summary: str | None = None
    publisher: str | None = None
    writer: str | None = None
    penciller: str | None = None
    inker: str | None = None
    colorist: str | None = None
    letterer: str | None = None
    cover_artist: str | None = None
    editor: str | None = None
    year: str | None = None
    month: str | None = None
    day: str | None = None
    language_iso: str | None = None
    page_count: int | None = Field(default=None, ge=0)
    genre: str | None = None
    tags: list[str] = Field(default_factory=list)
    web: str | None = None

    @classmethod
    def from_metadata(cls, metadata: Metadata) -> "ComicInfo":
        """Build comic info from generic metadata (author becomes writer)."""
        return cls(
            title=metadata.title,
            publisher=metadata.publisher,
            summary=metadata.description,
            language_iso=metadata.language,
            writer=metadata.author,
            tags=list(metadata.tags or []),
        )

    def to_metadata(self) -> Metadata:
        """Collapse comic info into generic metadata.

        Only the writer survives as author; the other contributor roles
        have no counterpart.
        """
        return Metadata(
            title=self.title,
            publisher=self.publisher,
            description=self.summary,
            language=self.language_iso,
            author=self.writer,
            tags=list(self.tags) if self.tags else None,
            format="CBZ",
        )
