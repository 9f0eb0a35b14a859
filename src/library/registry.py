"""Registering new titles in the library from catalog metadata."""

import logging
from typing import Optional

from .catalog import CatalogSource, SeriesMetadata
from .db import LibraryDB
from .errors import LibraryError
from .models import NEVER_SYNCED, Manga, Tag
from .normalize import parse_demographic, parse_last_chapter, parse_last_volume, parse_pub_status

logger = logging.getLogger(__name__)


def ensure_tags(store: LibraryDB, names: list[str]) -> list[Tag]:
    """Guarantee the named tags exist and return them with their ids."""
    names = [name for name in names if name]
    store.insert_tags(names)
    return store.tag_names_to_tags(names)


def build_manga(meta: SeriesMetadata, ser_title: str, full_title: str, tags: list[Tag]) -> Manga:
    """Create an unsynced Manga from series metadata."""
    return Manga(
        manga_id=meta.series_id,
        ser_title=ser_title,
        full_title=full_title,
        descr=meta.description,
        time_modified=NEVER_SYNCED,
        demographic=parse_demographic(meta.demographic),
        pub_status=parse_pub_status(meta.status),
        tags=tags,
        chapters=[],
        last_volume=parse_last_volume(meta.last_volume),
        last_chapter=parse_last_chapter(meta.last_chapter),
    )


def register_manga(
    client: CatalogSource,
    store: LibraryDB,
    series_id: str,
    ser_title: str,
    full_title: Optional[str] = None,
    meta: Optional[SeriesMetadata] = None,
) -> Manga:
    """Add a series to the library.

    Args:
        client: Catalog to read series metadata from
        store: Library database
        series_id: Catalog identifier of the series
        ser_title: Short unique local label, also the directory name on disk
        full_title: Display title; defaults to the first title option
        meta: Metadata already fetched for this series, to avoid a second request

    Returns:
        The stored Manga, not yet synced
    """
    if not ser_title:
        raise ValueError("ser_title must not be empty")

    if meta is None:
        meta = client.fetch_series_metadata(series_id)

    if full_title is None:
        options = meta.title_options()
        if not options:
            raise LibraryError(f"Series {series_id} has no usable title; pass one explicitly")
        full_title = options[0]

    tags = ensure_tags(store, meta.tags)
    manga = build_manga(meta, ser_title, full_title, tags)
    store.insert_manga(manga)

    logger.info("Registered %s (%s) with %d tags", manga.ser_title, manga.manga_id, len(tags))
    return manga
