"""Sequential, rate-limited chapter downloader."""

import logging
import os
from pathlib import Path
from typing import Literal, Optional

from tqdm import tqdm

from .catalog import CatalogSource
from .db import LibraryDB
from .errors import FilesystemError, LibraryError
from .models import Chapter
from .ratelimit import Gate, IntervalGate
from .storage import get_page_path, get_part_path

logger = logging.getLogger(__name__)

ChapterState = Literal["NotDownloaded", "Downloading", "Downloaded", "Failed"]

CHAPTER_DIR_MODE = 0o755


class DownloadReport:
    """Result of downloading a batch of chapters."""

    def __init__(self, chapters: list[Chapter], errors: dict[str, str], states: dict[str, ChapterState]):
        """Initialize download report."""
        self.chapters = chapters
        self.errors = errors
        self.states = states

    @property
    def succeeded(self) -> list[Chapter]:
        return [c for c in self.chapters if self.states.get(c.chapter_hash) == "Downloaded"]

    @property
    def failed(self) -> list[Chapter]:
        return [c for c in self.chapters if self.states.get(c.chapter_hash) == "Failed"]

    @property
    def success(self) -> bool:
        return not self.errors


def _write_page(client: CatalogSource, page_url: str, page_path: Path) -> None:
    """Stream one page into place via a .part file."""
    part_file = get_part_path(page_path)
    try:
        with open(part_file, "wb") as f:
            for chunk in client.fetch_page_bytes(page_url):
                f.write(chunk)
        os.replace(part_file, page_path)
    except OSError as e:
        part_file.unlink(missing_ok=True)
        raise FilesystemError(f"Failed to write {page_path}: {e}") from e
    except LibraryError:
        part_file.unlink(missing_ok=True)
        raise


def download_chapter(
    client: CatalogSource,
    store: LibraryDB,
    chapter: Chapter,
    gate: Gate,
    progress: bool = False,
) -> Chapter:
    """Download every page of a chapter, then mark it downloaded.

    Pages are fetched in the order the delivery node lists them, each one
    after ``gate.wait()``. Any failure raises and leaves the chapter
    undownloaded in the store; the next attempt starts from the first page.
    """
    delivery = client.fetch_chapter_delivery(chapter.chapter_hash)

    chapter_dir = Path(chapter.chapter_path)
    page_paths = [(delivery.page_url(name), get_page_path(chapter_dir, name)) for name in delivery.page_filenames]

    try:
        chapter_dir.mkdir(mode=CHAPTER_DIR_MODE, parents=True, exist_ok=True)
        # mkdir mode is masked by the umask
        chapter_dir.chmod(CHAPTER_DIR_MODE)
    except OSError as e:
        raise FilesystemError(f"Failed to create directory {chapter_dir}: {e}") from e

    pages = tqdm(
        page_paths,
        desc=f"{chapter.chapter_num:g} {chapter.chapter_name}",
        unit="page",
        disable=not progress,
    )
    for page_url, page_path in pages:
        gate.wait()
        _write_page(client, page_url, page_path)

    logger.info("Downloaded %d pages of %s to %s", len(delivery.page_filenames), chapter.chapter_hash, chapter_dir)
    return store.update_chapter_downloaded(chapter)


def download_chapters(
    client: CatalogSource,
    store: LibraryDB,
    chapters: list[Chapter],
    gate: Optional[Gate] = None,
    progress: bool = False,
) -> DownloadReport:
    """Download the given chapters one at a time.

    Chapters already downloaded are passed through untouched. A failed
    chapter is recorded in the report and the remaining chapters still run.
    """
    gate = gate or IntervalGate()
    updated: list[Chapter] = []
    errors: dict[str, str] = {}
    states: dict[str, ChapterState] = {}

    for chapter in chapters:
        if chapter.downloaded:
            states[chapter.chapter_hash] = "Downloaded"
            updated.append(chapter)
            continue

        states[chapter.chapter_hash] = "Downloading"
        logger.info("Downloading %s (ch. %g)", chapter.chapter_hash, chapter.chapter_num)
        try:
            chapter = download_chapter(client, store, chapter, gate, progress=progress)
        except LibraryError as e:
            logger.error("Download failed for %s: %s", chapter.chapter_hash, e)
            states[chapter.chapter_hash] = "Failed"
            errors[chapter.chapter_hash] = str(e)
        else:
            states[chapter.chapter_hash] = "Downloaded"
        updated.append(chapter)

    return DownloadReport(chapters=updated, errors=errors, states=states)
