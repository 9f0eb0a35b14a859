"""Feed synchronization: paginated retrieval and idempotent merge of chapters."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from .catalog import CatalogSource
from .db import LibraryDB
from .errors import LibraryError
from .models import Chapter, Manga, sort_chapters
from .normalize import normalize_feed

logger = logging.getLogger(__name__)

PAGE_SIZE = 50


@dataclass
class SyncResult:
    """Outcome of syncing one title.

    ``manga`` is the title as it stands after the sync (unchanged on
    failure); ``new_chapters`` the chapters fetched this time, sorted.
    """
    manga: Manga
    new_chapters: list[Chapter] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def fetch_feed(client: CatalogSource, manga: Manga, library_root: Path, full: bool = False) -> list[Chapter]:
    """Fetch and normalize every feed page for a title.

    Only chapters published since the last sync are requested unless
    ``full`` is set. At least one page is always fetched; paging stops once
    the offset reaches the total reported by the latest page.
    """
    since = None if full else manga.time_modified
    chapters: list[Chapter] = []
    offset = 0

    while True:
        page = client.fetch_feed_page(manga.manga_id, offset, PAGE_SIZE, since)
        chapters.extend(normalize_feed(page.items, manga.manga_id, manga.ser_title, library_root))
        offset += PAGE_SIZE
        if offset >= page.total:
            break

    logger.info("Fetched %d chapters for %s in %d pages", len(chapters), manga.ser_title, offset // PAGE_SIZE)
    return chapters


def merge_chapters(
    store: LibraryDB, manga: Manga, new_chapters: list[Chapter], synced_at: Optional[datetime] = None
) -> Manga:
    """Merge fetched chapters into a title and the store.

    Fetched chapters are sorted and appended after the chapters already
    known; a hash that is already known keeps its existing entry. The store
    ignores duplicate hashes, so merging the same chapters twice is a no-op.
    ``synced_at`` becomes the title's sync time; it defaults to now.
    """
    known = {c.chapter_hash for c in manga.chapters}
    merged = list(manga.chapters)
    for chapter in sort_chapters(new_chapters):
        if chapter.chapter_hash in known:
            continue
        known.add(chapter.chapter_hash)
        merged.append(chapter)

    store.insert_chapters(merged)
    manga.chapters = merged
    return store.update_sync_time(manga, now=synced_at)


def sync_feed(
    client: CatalogSource, store: LibraryDB, manga: Manga, library_root: Path, full: bool = False
) -> SyncResult:
    """Pull new chapters for a title and merge them into the library.

    Failures are reported in the result rather than raised; if fetching
    fails, the store and the title's sync time are left untouched.
    The sync time recorded is when fetching started, so chapters published
    while the feed is being paged are picked up by the next sync.
    """
    started = datetime.now()
    try:
        new_chapters = sort_chapters(fetch_feed(client, manga, library_root, full=full))
        manga = merge_chapters(store, manga, new_chapters, synced_at=started)
    except LibraryError as e:
        logger.error("Sync failed for %s: %s", manga.ser_title, e)
        return SyncResult(manga=manga, errors=[f"{manga.ser_title}: {e}"])

    logger.info("Synced %s: %d chapters fetched, %d total", manga.ser_title, len(new_chapters), len(manga.chapters))
    return SyncResult(manga=manga, new_chapters=new_chapters)


def sync_library(client: CatalogSource, store: LibraryDB, library_root: Path, full: bool = False) -> list[SyncResult]:
    """Sync every title in the library, one after another."""
    return [sync_feed(client, store, manga, library_root, full=full) for manga in store.get_all()]
