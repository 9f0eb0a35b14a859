"""Tests for the library database."""

from datetime import datetime

import pytest

from src.library.db import LibraryDB
from src.library.errors import StoreError
from src.library.models import NEVER_SYNCED, Chapter, Manga, Review

from conftest import MANGA_ID


def make_chapter(chapter_hash, number=1.0, volume=0, manga_id=MANGA_ID):
    return Chapter(
        chapter_hash=chapter_hash,
        chapter_num=number,
        chapter_name=f"Ch. {number:g}",
        volume_num=volume,
        manga_id=manga_id,
        chapter_path=f"/lib/kokuhaku/{volume:02d}/{number:05.1f}-{chapter_hash}",
    )


def test_schema_created(tmp_root):
    db = LibraryDB(tmp_root / "nested" / "library.sqlite3")
    tables = {row[0] for row in db.conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    assert {"Manga", "Tag", "ItemTag", "Chapter", "Review"} <= tables
    db.close()


def test_insert_and_get_manga(store, manga):
    loaded = store.get_by_id(MANGA_ID)

    assert loaded.ser_title == "kokuhaku"
    assert loaded.time_modified == NEVER_SYNCED
    assert loaded.demographic == "Shounen"
    assert loaded.chapters == []
    assert loaded.review is None


def test_get_missing_manga_raises(store):
    with pytest.raises(StoreError):
        store.get_by_id("missing")


def test_ser_title_is_unique(store, manga):
    other = Manga(
        manga_id="other-id",
        ser_title="kokuhaku",
        full_title="Another",
        descr="",
        time_modified=NEVER_SYNCED,
        demographic="Unknown",
        pub_status="Completed",
    )
    with pytest.raises(StoreError):
        store.insert_manga(other)


def test_enumerations_enforced(store):
    bad = Manga(
        manga_id="bad",
        ser_title="bad",
        full_title="Bad",
        descr="",
        time_modified=NEVER_SYNCED,
        demographic="Kodomo",
        pub_status="Ongoing",
    )
    with pytest.raises(StoreError):
        store.insert_manga(bad)


def test_insert_chapters_ignores_duplicates(store, manga):
    chapters = [make_chapter("a", 1), make_chapter("b", 2), make_chapter("a", 1)]

    store.insert_chapters(chapters)
    store.insert_chapters(chapters)

    assert [c.chapter_hash for c in store.get_chapters(MANGA_ID)] == ["a", "b"]


def test_duplicate_insert_keeps_existing_flags(store, manga):
    store.insert_chapters([make_chapter("a")])
    store.update_chapter_downloaded(make_chapter("a"))

    store.insert_chapters([make_chapter("a")])

    assert store.get_chapter("a").downloaded is True


def test_chapter_requires_known_manga(store):
    with pytest.raises(StoreError):
        store.insert_chapters([make_chapter("orphan", manga_id="no-such-manga")])


def test_update_flags_are_monotonic(store, manga):
    store.insert_chapters([make_chapter("a")])

    chapter = store.update_chapter_downloaded(make_chapter("a"))
    assert chapter.downloaded is True
    chapter = store.update_chapter_read(chapter)
    assert chapter.is_read is True

    # marking again keeps them set
    store.update_chapter_read(chapter)
    stored = store.get_chapter("a")
    assert stored.downloaded is True
    assert stored.is_read is True


def test_update_unknown_chapter_raises(store, manga):
    with pytest.raises(StoreError):
        store.update_chapter_downloaded(make_chapter("missing"))


def test_update_sync_time(store, manga):
    now = datetime(2024, 5, 1, 12, 30, 15, 999)

    updated = store.update_sync_time(manga, now=now)

    assert updated.time_modified == datetime(2024, 5, 1, 12, 30, 15)
    assert store.get_by_id(MANGA_ID).time_modified == datetime(2024, 5, 1, 12, 30, 15)


def test_tags_inserted_once_and_linked(store, manga):
    store.insert_tags(["Romance", "Comedy"])
    store.insert_tags(["Comedy", "Drama"])
    tags = store.tag_names_to_tags(["Romance", "Comedy"])

    store.link_tags(MANGA_ID, tags)
    store.link_tags(MANGA_ID, tags)

    count = store.conn.execute("SELECT COUNT(*) FROM Tag").fetchone()[0]
    assert count == 3
    assert sorted(str(t) for t in store.get_tags(MANGA_ID)) == ["Comedy", "Romance"]


def test_tag_lookup_of_unknown_name_raises(store):
    with pytest.raises(StoreError):
        store.tag_names_to_tags(["Nope"])


def test_review_round_trip_and_rating_bounds(store, manga):
    store.insert_review(Review(manga_id=MANGA_ID, rating=85, text="Sweet."))
    store.insert_review(Review(manga_id=MANGA_ID, rating=90, text="Sweeter."))

    assert store.get_by_id(MANGA_ID).review == Review(manga_id=MANGA_ID, rating=90, text="Sweeter.")

    with pytest.raises(StoreError):
        store.insert_review(Review(manga_id=MANGA_ID, rating=101, text="Too much"))


def test_get_all_and_by_ser_title(store, manga):
    store.insert_chapters([make_chapter("a")])

    library = store.get_all()

    assert [m.manga_id for m in library] == [MANGA_ID]
    assert len(library[0].chapters) == 1
    assert store.get_by_ser_title("kokuhaku").manga_id == MANGA_ID
    with pytest.raises(StoreError):
        store.get_by_ser_title("unknown")


def test_deleting_manga_cascades(store, manga):
    store.insert_chapters([make_chapter("a")])

    with store.conn:
        store.conn.execute("DELETE FROM Manga WHERE MangaID = ?", (MANGA_ID,))

    assert store.get_chapters(MANGA_ID) == []


def test_sqlite_errors_are_wrapped(tmp_root):
    db = LibraryDB(tmp_root / "library.sqlite3")
    db.close()
    with pytest.raises(StoreError):
        db.insert_tags(["x"])
