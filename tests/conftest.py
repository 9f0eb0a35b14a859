"""Shared fixtures: an in-memory catalog and a temporary library."""

import io
import tempfile
from pathlib import Path

import pytest
from PIL import Image

from src.library.catalog import AltTitle, ChapterDelivery, FeedItem, FeedPage, SeriesMetadata
from src.library.db import LibraryDB
from src.library.errors import NetworkError, NotFoundError
from src.library.models import NEVER_SYNCED, Manga

MANGA_ID = "ee51d8fb-ba27-46a5-b204-d565ea1b11aa"


class FakeClock:
    """Monotonic clock whose sleep() just advances time."""

    def __init__(self):
        self.now = 100.0

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


class FakeCatalog:
    """Catalog serving canned series, feeds, delivery metadata and pages."""

    def __init__(self, clock=None):
        self.series: dict[str, SeriesMetadata] = {}
        self.feeds: dict[str, list[FeedItem]] = {}
        self.totals: dict[str, int] = {}
        self.deliveries: dict[str, ChapterDelivery] = {}
        self.pages: dict[str, bytes] = {}
        self.fail_urls: set[str] = set()
        self.fail_feed_offsets: set[int] = set()
        self.feed_calls: list[tuple] = []
        self.page_calls: list[tuple[str, float]] = []
        self.clock = clock

    def fetch_series_metadata(self, series_id):
        if series_id not in self.series:
            raise NotFoundError(f"Not found: {series_id}", status_code=404)
        return self.series[series_id]

    def fetch_feed_page(self, series_id, offset, limit=50, since=None):
        self.feed_calls.append((series_id, offset, limit, since))
        if offset in self.fail_feed_offsets:
            raise NetworkError(f"feed offset {offset} unavailable")
        items = self.feeds.get(series_id, [])
        total = self.totals.get(series_id, len(items))
        return FeedPage(items=items[offset:offset + limit], offset=offset, limit=limit, total=total)

    def fetch_chapter_delivery(self, chapter_id):
        if chapter_id not in self.deliveries:
            raise NotFoundError(f"Not found: {chapter_id}", status_code=404)
        return self.deliveries[chapter_id]

    def fetch_page_bytes(self, page_url):
        self.page_calls.append((page_url, self.clock.time() if self.clock else 0.0))
        if page_url in self.fail_urls:
            raise NetworkError(f"HTTP 500 from {page_url}", status_code=500)
        data = self.pages[page_url]
        return iter([data[: len(data) // 2], data[len(data) // 2:]])

    def close(self):
        pass

    def add_chapter(self, chapter_id, page_names, base_url="https://node.example/at-home"):
        """Register delivery metadata and image bytes for a chapter."""
        delivery = ChapterDelivery(base_url=base_url, chapter_hash=f"h-{chapter_id}", page_filenames=list(page_names))
        self.deliveries[chapter_id] = delivery
        for idx, name in enumerate(page_names):
            self.pages[delivery.page_url(name)] = make_png(idx)
        return delivery


def make_png(seed: int) -> bytes:
    """Return the bytes of a small distinct PNG."""
    img = Image.new("RGB", (20, 30), color=(seed * 40 % 256, 0, 0))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def make_series(series_id=MANGA_ID, **overrides) -> SeriesMetadata:
    values = dict(
        series_id=series_id,
        title="Kokuhaku Sarete",
        alt_titles=[AltTitle(ja="告白されて"), AltTitle(en="Confessed To"), AltTitle(ja_ro="Kokuhaku")],
        description="A romantic comedy between a mistress and her servant.",
        demographic="shounen",
        status="ongoing",
        tags=["Romance", "Comedy"],
        last_volume="",
        last_chapter="",
    )
    values.update(overrides)
    return SeriesMetadata(**values)


def feed_items(count: int, start: int = 1) -> list[FeedItem]:
    return [FeedItem(chapter_id=f"ch-{n:04d}", title="", volume="", chapter=str(n)) for n in range(start, start + count)]


@pytest.fixture
def tmp_root():
    """Temporary directory for the library and its database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(tmp_root):
    db = LibraryDB(tmp_root / "library.sqlite3")
    yield db
    db.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog(clock):
    return FakeCatalog(clock=clock)


@pytest.fixture
def manga(store):
    """A stored, never-synced title with no chapters."""
    m = Manga(
        manga_id=MANGA_ID,
        ser_title="kokuhaku",
        full_title="Kokuhaku Sarete",
        descr="",
        time_modified=NEVER_SYNCED,
        demographic="Shounen",
        pub_status="Ongoing",
    )
    store.insert_manga(m)
    return m
