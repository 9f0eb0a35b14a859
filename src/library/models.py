"""Library entities: titles, chapters, tags and reviews."""

from dataclasses import dataclass, field
from datetime import datetime
from functools import cmp_to_key
from typing import Literal, Optional


Demographic = Literal["Shounen", "Shoujo", "Seinen", "Josei", "Unknown"]
PubStatus = Literal["Ongoing", "Completed", "Hiatus", "Cancelled"]

DEMOGRAPHICS: tuple[str, ...] = ("Shounen", "Shoujo", "Seinen", "Josei", "Unknown")
PUB_STATUSES: tuple[str, ...] = ("Ongoing", "Completed", "Hiatus", "Cancelled")

# time_modified of a title that has never been synced
NEVER_SYNCED = datetime.fromtimestamp(0)


@dataclass
class Tag:
    """A genre or prominent element shared between titles."""
    tag_id: int
    title: str

    def __str__(self) -> str:
        return self.title


@dataclass
class Review:
    """A user's review of a title. Rating is out of 100."""
    manga_id: str
    rating: int
    text: str


@dataclass
class Chapter:
    """A single chapter of a title.

    ``volume_num`` of 0 means the volume is unknown, not a real volume 0.
    ``downloaded`` and ``is_read`` only ever go from False to True.
    """
    chapter_hash: str
    chapter_num: float
    chapter_name: str
    volume_num: int
    manga_id: str
    downloaded: bool = False
    is_read: bool = False
    chapter_path: str = ""


@dataclass
class Manga:
    """A title in the library."""
    manga_id: str
    ser_title: str
    full_title: str
    descr: str
    time_modified: datetime
    demographic: Demographic
    pub_status: PubStatus
    tags: list[Tag] = field(default_factory=list)
    chapters: list[Chapter] = field(default_factory=list)
    last_volume: int = 0
    last_chapter: float = 0.0
    review: Optional[Review] = None


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def compare_chapters(a: Chapter, b: Chapter) -> int:
    """Order two chapters, returning <0, 0 or >0.

    Volumes decide only when both are known (nonzero) and differ; otherwise
    the chapter number decides. With a mix of known and unknown volumes this
    is not a total order, e.g. (vol 0, ch 5) > (vol 2, ch 1) while
    (vol 2, ch 1) < (vol 3, ch 0).
    """
    if a.volume_num != 0 and b.volume_num != 0 and a.volume_num != b.volume_num:
        return _cmp(a.volume_num, b.volume_num)
    return _cmp(a.chapter_num, b.chapter_num)


def sort_chapters(chapters: list[Chapter]) -> list[Chapter]:
    """Return chapters sorted with compare_chapters."""
    return sorted(chapters, key=cmp_to_key(compare_chapters))
