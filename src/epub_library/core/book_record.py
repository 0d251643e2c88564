"""Domain entity for a book in the reading library."""

import re
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

_EPUB_SUFFIX = re.compile(r"\.epub$", re.IGNORECASE)


def title_from_path(file_path: Path) -> str:
    """Derive a display title from a document file name."""
    name = Path(file_path).name
    return _EPUB_SUFFIX.sub("", name) or name


@dataclass
class BookRecord:
    """Represents an imported document and its reading state.

    Attributes:
        id: Unique identifier in the database (None until persisted).
        title: Display title of the book.
        file_path: Absolute path to the document on local storage.
        last_locator: Decoded position of the reader ({} = start of document).
        total_reading_time: Accumulated reading time in seconds.
        highlights: Chapter identifier -> highlight texts in discovery order.
        cover_image_path: Optional reference to a bundled cover image.
        open_library_key: Catalogue key the book was downloaded from, if any.
    """

    id: Optional[int]
    title: str
    file_path: Path
    last_locator: Dict[str, Any] = field(default_factory=dict)
    total_reading_time: int = 0
    highlights: Dict[str, List[str]] = field(default_factory=dict)
    cover_image_path: Optional[str] = None
    open_library_key: Optional[str] = None

    def __post_init__(self) -> None:
        self.file_path = Path(self.file_path)
        if not self.title or not self.title.strip():
            self.title = title_from_path(self.file_path)
        if self.total_reading_time < 0:
            raise ValueError("total_reading_time must not be negative")
        # Absent chapter means absent key, never an empty list.
        self.highlights = {
            chapter: list(texts) for chapter, texts in self.highlights.items() if texts
        }

    @property
    def progression(self) -> float:
        """Fraction of the book read according to the last locator (0.0-1.0)."""
        locations = self.last_locator.get("locations") if self.last_locator else None
        if not isinstance(locations, dict):
            return 0.0
        value = locations.get("progression")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0.0
        return min(max(float(value), 0.0), 1.0)

    @property
    def estimated_time_left(self) -> Optional[timedelta]:
        """Extrapolate remaining reading time from time spent so far."""
        progression = self.progression
        if progression <= 0.01 or self.total_reading_time <= 10:
            return None
        estimated_total = self.total_reading_time / progression
        seconds_left = estimated_total * (1.0 - progression)
        if seconds_left < 0:
            return None
        return timedelta(seconds=round(seconds_left))

    @property
    def highlight_count(self) -> int:
        return sum(len(texts) for texts in self.highlights.values())


def format_duration(duration: Optional[timedelta]) -> str:
    """Format a reading duration as ``"1h 5m"``, ``"12m"`` or ``"< 1m"``."""
    if duration is None:
        return "N/A"
    seconds = int(duration.total_seconds())
    if seconds < 0:
        return "N/A"
    if seconds == 0:
        return "0m"
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60
    if hours == 0 and minutes == 0:
        return "< 1m"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
