"""Catalog protocol and data structures for remote series metadata."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Optional, Protocol


@dataclass
class AltTitle:
    """An alternative title for a series, in whichever languages it exists."""
    en: str = ""
    ja: str = ""
    ja_ro: str = ""


@dataclass
class SeriesMetadata:
    """Attributes of a series as reported by the catalog."""
    series_id: str
    title: str
    alt_titles: list[AltTitle]
    description: str
    demographic: str
    status: str
    tags: list[str]
    last_volume: str = ""
    last_chapter: str = ""

    def title_options(self) -> list[str]:
        """Return candidate full titles: the main title, then one per alt title."""
        options = [self.title] if self.title else []
        for alt in self.alt_titles:
            if alt.en:
                options.append(alt.en)
            elif alt.ja:
                options.append(alt.ja)
            elif alt.ja_ro:
                options.append(alt.ja_ro)
        return options


@dataclass
class FeedItem:
    """One raw chapter summary from a series feed. Fields are unparsed strings."""
    chapter_id: str
    title: str
    volume: str
    chapter: str


@dataclass
class FeedPage:
    """One page of a series feed."""
    items: list[FeedItem]
    offset: int
    limit: int
    total: int


@dataclass
class ChapterDelivery:
    """Short-lived image delivery details for one chapter."""
    base_url: str
    chapter_hash: str
    page_filenames: list[str] = field(default_factory=list)

    def page_url(self, filename: str) -> str:
        """Return the URL for one page image."""
        return f"{self.base_url}/data/{self.chapter_hash}/{filename}"


class CatalogSource(Protocol):
    """Protocol for the read-only catalog the engine syncs from."""

    def fetch_series_metadata(self, series_id: str) -> SeriesMetadata:
        """Return attributes of a single series."""
        ...

    def fetch_feed_page(
        self, series_id: str, offset: int, limit: int, since: Optional[datetime] = None
    ) -> FeedPage:
        """Return one page of the series feed, published at or after ``since``."""
        ...

    def fetch_chapter_delivery(self, chapter_id: str) -> ChapterDelivery:
        """Resolve delivery base URL and ordered page filenames for a chapter."""
        ...

    def fetch_page_bytes(self, page_url: str) -> Iterator[bytes]:
        """Stream the bytes of one page image."""
        ...
