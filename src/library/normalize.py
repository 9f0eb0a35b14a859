"""Conversion of raw catalog records into library entities."""

import re
from pathlib import Path

from .catalog import FeedItem
from .errors import ParseError
from .models import DEMOGRAPHICS, PUB_STATUSES, Chapter
from .storage import get_chapter_path

# Plain decimal notation only: no surrounding whitespace or digit separators.
FLOAT_PATTERN = re.compile(r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)", re.IGNORECASE)
INT_PATTERN = re.compile(r"[+-]?[0-9]+")


def chapter_title(raw_title: str, raw_chapter: str) -> str:
    """Return the chapter name, falling back to ``Ch. <number>``."""
    if raw_title == "":
        return f"Ch. {raw_chapter}"
    return raw_title


def parse_chapter_number(raw: str) -> float:
    """Parse a chapter number. Empty means 0; anything else must be a float."""
    if raw == "":
        return 0.0
    if not FLOAT_PATTERN.fullmatch(raw):
        raise ParseError(f"Failed to parse chapter number from {raw!r}")
    return float(raw)


def parse_volume_number(raw: str) -> int:
    """Parse a volume number leniently.

    Empty, malformed and non-finite values become 0 (unknown volume);
    fractional values such as ``3.5`` are truncated.
    """
    if INT_PATTERN.fullmatch(raw):
        return int(raw)
    if not FLOAT_PATTERN.fullmatch(raw):
        return 0
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return 0


def normalize_chapter(item: FeedItem, manga_id: str, ser_title: str, library_root: Path) -> Chapter:
    """Build a Chapter from a raw feed item."""
    chapter_num = parse_chapter_number(item.chapter)
    volume_num = parse_volume_number(item.volume)
    path = get_chapter_path(library_root, ser_title, volume_num, chapter_num, item.chapter_id)

    return Chapter(
        chapter_hash=item.chapter_id,
        chapter_num=chapter_num,
        chapter_name=chapter_title(item.title, item.chapter),
        volume_num=volume_num,
        manga_id=manga_id,
        downloaded=False,
        is_read=False,
        chapter_path=str(path),
    )


def normalize_feed(items: list[FeedItem], manga_id: str, ser_title: str, library_root: Path) -> list[Chapter]:
    """Build Chapters from every item of a feed page, preserving order."""
    return [normalize_chapter(item, manga_id, ser_title, library_root) for item in items]


def _upper_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def parse_demographic(raw: str) -> str:
    """Map a catalog demographic to the closed set, empty meaning Unknown."""
    value = _upper_first(raw) if raw else "Unknown"
    if value not in DEMOGRAPHICS:
        raise ParseError(f"Unknown publication demographic {raw!r}")
    return value


def parse_pub_status(raw: str) -> str:
    """Map a catalog publication status to the closed set."""
    value = _upper_first(raw)
    if value not in PUB_STATUSES:
        raise ParseError(f"Unknown publication status {raw!r}")
    return value


def parse_last_volume(raw: str) -> int:
    return int(raw) if INT_PATTERN.fullmatch(raw) else 0


def parse_last_chapter(raw: str) -> float:
    return float(raw) if FLOAT_PATTERN.fullmatch(raw) else 0.0
