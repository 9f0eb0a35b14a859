"""SQLite database for the manga library."""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from .errors import StoreError
from .models import Chapter, Manga, Review, Tag

logger = logging.getLogger(__name__)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS Manga (
        MangaID VARCHAR(64) PRIMARY KEY,
        SerTitle VARCHAR(32) NOT NULL UNIQUE,
        FullTitle VARCHAR(128) NOT NULL,
        Descr VARCHAR(1024),
        TimeModified TEXT,
        LastVolume INTEGER,
        LastChapter REAL,
        Demographic VARCHAR(7),
        PubStatus VARCHAR(9),

        CHECK (Demographic IN ('Shounen', 'Shoujo', 'Seinen', 'Josei', 'Unknown')),
        CHECK (PubStatus IN ('Ongoing', 'Completed', 'Hiatus', 'Cancelled'))
    );

    CREATE TABLE IF NOT EXISTS Tag (
        TagID INTEGER PRIMARY KEY,
        TagTitle VARCHAR(16) UNIQUE
    );

    CREATE TABLE IF NOT EXISTS ItemTag (
        MangaID VARCHAR(64),
        TagID INTEGER,
        PRIMARY KEY (MangaID, TagID),

        FOREIGN KEY (MangaID) REFERENCES Manga(MangaID)
            ON UPDATE CASCADE
            ON DELETE CASCADE,
        FOREIGN KEY (TagID) REFERENCES Tag(TagID)
            ON UPDATE CASCADE
            ON DELETE CASCADE
    );

    CREATE TABLE IF NOT EXISTS Chapter (
        ChapterHash VARCHAR(64) PRIMARY KEY,
        ChapterNum REAL,
        ChapterName VARCHAR(32),
        VolumeNum INTEGER,
        MangaID VARCHAR(64),
        Downloaded INTEGER NOT NULL,
        IsRead INTEGER NOT NULL,
        ChapterPath VARCHAR(64),

        FOREIGN KEY (MangaID) REFERENCES Manga(MangaID)
            ON UPDATE CASCADE
            ON DELETE CASCADE
    );
    CREATE INDEX IF NOT EXISTS ChapterMid_idx ON Chapter(MangaID);

    CREATE TABLE IF NOT EXISTS Review (
        MangaID VARCHAR(64) PRIMARY KEY,
        Rating INTEGER,
        Rev VARCHAR(5120),

        FOREIGN KEY (MangaID) REFERENCES Manga(MangaID)
            ON UPDATE CASCADE
            ON DELETE CASCADE,
        CHECK (Rating BETWEEN 0 AND 100)
    );
"""


class LibraryDB:
    """Database of titles, their chapters, tags and reviews."""

    def __init__(self, db_path: Path):
        """Open the database, creating the file and schema if needed."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.conn = sqlite3.connect(str(self.db_path))
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
            self.conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to initialize {self.db_path}: {e}") from e

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _write(self, sql: str, rows: list[tuple], what: str) -> None:
        """Run one statement per row in a single transaction."""
        try:
            with self.conn:
                self.conn.executemany(sql, rows)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to {what}: {e}") from e

    def _update_one(self, sql: str, params: tuple, what: str) -> None:
        try:
            with self.conn:
                cursor = self.conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to {what}: {e}") from e

        if cursor.rowcount != 1:
            logger.warning("Bad %s: updated %d rows", what, cursor.rowcount)
            raise StoreError(f"Bad {what}: updated {cursor.rowcount} rows")

    # ------- create -------

    def insert_tags(self, names: list[str]) -> None:
        """Add tags by name, ignoring names already present.

        Use link_tags to associate them with a title.
        """
        self._write("INSERT OR IGNORE INTO Tag (TagTitle) VALUES (?)", [(name,) for name in names], "insert tags")

    def link_tags(self, manga_id: str, tags: list[Tag]) -> None:
        """Associate tags with a title. Both must already be stored."""
        self._write(
            "INSERT OR IGNORE INTO ItemTag (MangaID, TagID) VALUES (?, ?)",
            [(manga_id, tag.tag_id) for tag in tags],
            f"link tags to {manga_id}",
        )

    def insert_chapters(self, chapters: list[Chapter]) -> None:
        """Insert chapters, silently skipping hashes that already exist."""
        # the catalog sometimes returns the same chapter twice
        self._write(
            """
            INSERT OR IGNORE INTO Chapter
            (ChapterHash, ChapterNum, ChapterName, VolumeNum, MangaID, Downloaded, IsRead, ChapterPath)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    c.chapter_hash,
                    c.chapter_num,
                    c.chapter_name,
                    c.volume_num,
                    c.manga_id,
                    int(c.downloaded),
                    int(c.is_read),
                    c.chapter_path,
                )
                for c in chapters
            ],
            "insert chapters",
        )

    def insert_manga(self, manga: Manga) -> None:
        """Insert a title along with its chapters and tag links."""
        self._write(
            """
            INSERT INTO Manga
            (MangaID, SerTitle, FullTitle, Descr, TimeModified, LastVolume, LastChapter, Demographic, PubStatus)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    manga.manga_id,
                    manga.ser_title,
                    manga.full_title,
                    manga.descr,
                    manga.time_modified.isoformat(),
                    manga.last_volume,
                    manga.last_chapter,
                    manga.demographic,
                    manga.pub_status,
                )
            ],
            f"insert {manga.ser_title}",
        )
        self.insert_chapters(manga.chapters)
        self.link_tags(manga.manga_id, manga.tags)

    def insert_review(self, review: Review) -> None:
        """Store a review, replacing any previous review of the same title."""
        self._write(
            "INSERT OR REPLACE INTO Review (MangaID, Rating, Rev) VALUES (?, ?, ?)",
            [(review.manga_id, review.rating, review.text)],
            f"insert review for {review.manga_id}",
        )

    # ------- read -------

    def tag_names_to_tags(self, names: list[str]) -> list[Tag]:
        """Look up stored tags by name, preserving order."""
        tags = []
        for name in names:
            row = self.conn.execute("SELECT TagID, TagTitle FROM Tag WHERE TagTitle = ?", (name,)).fetchone()
            if row is None:
                raise StoreError(f"Tag not found: {name}")
            tags.append(Tag(tag_id=row["TagID"], title=row["TagTitle"]))
        return tags

    def get_tags(self, manga_id: str) -> list[Tag]:
        """Get all the tags linked to a title."""
        rows = self.conn.execute(
            """
            SELECT TagID, TagTitle
            FROM Tag
            JOIN ItemTag USING (TagID)
            WHERE ItemTag.MangaID = ?
            ORDER BY TagID
            """,
            (manga_id,),
        ).fetchall()
        return [Tag(tag_id=row["TagID"], title=row["TagTitle"]) for row in rows]

    @staticmethod
    def _row_to_chapter(row: sqlite3.Row) -> Chapter:
        return Chapter(
            chapter_hash=row["ChapterHash"],
            chapter_num=row["ChapterNum"],
            chapter_name=row["ChapterName"],
            volume_num=row["VolumeNum"],
            manga_id=row["MangaID"],
            downloaded=bool(row["Downloaded"]),
            is_read=bool(row["IsRead"]),
            chapter_path=row["ChapterPath"],
        )

    def get_chapters(self, manga_id: str) -> list[Chapter]:
        """Get all the chapters of a title in insertion order."""
        rows = self.conn.execute("SELECT * FROM Chapter WHERE MangaID = ? ORDER BY rowid", (manga_id,)).fetchall()
        return [self._row_to_chapter(row) for row in rows]

    def get_chapter(self, chapter_hash: str) -> Optional[Chapter]:
        """Get a single chapter by hash."""
        row = self.conn.execute("SELECT * FROM Chapter WHERE ChapterHash = ?", (chapter_hash,)).fetchone()
        return self._row_to_chapter(row) if row else None

    def get_review(self, manga_id: str) -> Optional[Review]:
        """Get the review of a title, if any."""
        row = self.conn.execute("SELECT * FROM Review WHERE MangaID = ?", (manga_id,)).fetchone()
        if row is None:
            return None
        return Review(manga_id=row["MangaID"], rating=row["Rating"], text=row["Rev"])

    def _row_to_manga(self, row: sqlite3.Row) -> Manga:
        manga_id = row["MangaID"]
        return Manga(
            manga_id=manga_id,
            ser_title=row["SerTitle"],
            full_title=row["FullTitle"],
            descr=row["Descr"] or "",
            time_modified=datetime.fromisoformat(row["TimeModified"]),
            demographic=row["Demographic"],
            pub_status=row["PubStatus"],
            tags=self.get_tags(manga_id),
            chapters=self.get_chapters(manga_id),
            last_volume=row["LastVolume"] or 0,
            last_chapter=row["LastChapter"] or 0.0,
            review=self.get_review(manga_id),
        )

    def get_by_id(self, manga_id: str) -> Manga:
        """Get a single title complete with tags, chapters and review."""
        row = self.conn.execute("SELECT * FROM Manga WHERE MangaID = ?", (manga_id,)).fetchone()
        if row is None:
            raise StoreError(f"Manga not found: {manga_id}")
        return self._row_to_manga(row)

    def get_by_ser_title(self, ser_title: str) -> Manga:
        """Get a single title by its short local label."""
        row = self.conn.execute("SELECT * FROM Manga WHERE SerTitle = ?", (ser_title,)).fetchone()
        if row is None:
            raise StoreError(f"Manga not found: {ser_title}")
        return self._row_to_manga(row)

    def get_all(self) -> list[Manga]:
        """Get every title in the library."""
        rows = self.conn.execute("SELECT * FROM Manga ORDER BY SerTitle").fetchall()
        return [self._row_to_manga(row) for row in rows]

    # ------- update -------

    def update_sync_time(self, manga: Manga, now: Optional[datetime] = None) -> Manga:
        """Record a successful sync and return the updated title."""
        synced_at = (now or datetime.now()).replace(microsecond=0)
        self._update_one(
            "UPDATE Manga SET TimeModified = ? WHERE MangaID = ?",
            (synced_at.isoformat(), manga.manga_id),
            f"sync time update for {manga.manga_id}",
        )
        manga.time_modified = synced_at
        return manga

    def update_chapter_downloaded(self, chapter: Chapter) -> Chapter:
        """Mark a chapter downloaded and return the updated chapter."""
        self._update_one(
            "UPDATE Chapter SET Downloaded = 1 WHERE ChapterHash = ?",
            (chapter.chapter_hash,),
            f"downloaded update for {chapter.chapter_hash}",
        )
        chapter.downloaded = True
        return chapter

    def update_chapter_read(self, chapter: Chapter) -> Chapter:
        """Mark a chapter read and return the updated chapter."""
        self._update_one(
            "UPDATE Chapter SET IsRead = 1 WHERE ChapterHash = ?",
            (chapter.chapter_hash,),
            f"read update for {chapter.chapter_hash}",
        )
        chapter.is_read = True
        return chapter

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()
