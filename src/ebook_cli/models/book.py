"""Data models shared by every format handler."""

from pydantic import BaseModel, Field


class Metadata(BaseModel):
    """Book-level metadata. Every field is optional."""

    title: str | None = None
    author: str | None = None
    publisher: str | None = None
    description: str | None = None
    language: str | None = None
    isbn: str | None = None
    publication_date: str | None = None
    cover_image: bytes | None = None
    cover_image_path: str | None = None
    tags: list[str] | None = None
    format: str | None = None
    custom_fields: dict[str, str] = Field(default_factory=dict)

    def with_title(self, title: str) -> "Metadata":
        return self.model_copy(update={"title": title})

    def with_author(self, author: str) -> "Metadata":
        return self.model_copy(update={"author": author})

    def with_format(self, format: str) -> "Metadata":
        return self.model_copy(update={"format": format})

    def add_custom_field(self, key: str, value: str) -> None:
        self.custom_fields[key] = value


class TocEntry(BaseModel):
    """Single entry in table of contents.

    ``level`` is 1-based; 0 means the handler could not tell the depth.
    """

    id: int = 0
    title: str
    level: int = 0
    href: str | None = None
    children: list["TocEntry"] = Field(default_factory=list)

    @property
    def indent(self) -> int:
        """Indentation depth for display, never negative."""
        return max(self.level - 1, 0)


class ImageData(BaseModel):
    """Image payload bundled in an ebook."""

    name: str
    mime_type: str
    data: bytes
