"""Deterministic file organization for the library on disk."""

import re
from pathlib import Path

from .errors import DecodeError


# x6-23b96047cdd7217e5f493894de6d536afa046e7a33695e539a6960e2a7304d35.jpg -> 6, .jpg
PAGE_NAME_PATTERN = re.compile(r"^[A-Za-z]?([0-9]+)-[^/\\]*(\.[A-Za-z0-9]+)$")

PAGE_INDEX_WIDTH = 7


def get_series_path(root: Path, ser_title: str) -> Path:
    """Return deterministic path for a title."""
    return Path(root) / ser_title


def chapter_dirname(volume_num: int, chapter_num: float, chapter_hash: str) -> str:
    """Return the relative directory of a chapter, e.g. ``03/012.5-<hash>``."""
    return f"{volume_num:02d}/{chapter_num:05.1f}-{chapter_hash}"


def get_chapter_path(root: Path, ser_title: str, volume_num: int, chapter_num: float, chapter_hash: str) -> Path:
    """Return deterministic path for a chapter."""
    return get_series_path(root, ser_title) / chapter_dirname(volume_num, chapter_num, chapter_hash)


def normalize_page_filename(raw_name: str) -> str:
    """Return the local filename for a page as served by the delivery node.

    The leading page index is zero-padded and the original extension kept,
    so pages sort lexically in reading order. Other plain filenames are
    returned unchanged.

    Raises:
        DecodeError: If the name is empty, a dot entry or contains a path separator
    """
    match = PAGE_NAME_PATTERN.match(raw_name)
    if match:
        digits, extension = match.groups()
        return f"{digits.zfill(PAGE_INDEX_WIDTH)}{extension}"

    if raw_name in ("", ".", "..") or "/" in raw_name or "\\" in raw_name or "\0" in raw_name:
        raise DecodeError(f"Refusing page filename {raw_name!r}")
    return raw_name


def get_page_path(chapter_path: Path, raw_name: str) -> Path:
    """Return deterministic path for a single page, always directly inside the chapter."""
    return Path(chapter_path) / normalize_page_filename(raw_name)


def get_part_path(page_path: Path) -> Path:
    """Return the staging path a page is written to before it is complete."""
    return page_path.with_name(page_path.name + ".part")
