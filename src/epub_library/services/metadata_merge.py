"""Metadata Merge Engine - accumulates reading time, highlights and position."""

import logging
from dataclasses import replace
from typing import Any, Dict, Optional

from epub_library.core import BookRecord
from epub_library.core.errors import NotFound
from epub_library.io import BookRepository
from epub_library.services.book_locks import BookLockRegistry

logger = logging.getLogger(__name__)


class MetadataMergeEngine:
    """Read-modify-write operations on book records.

    All writes for one book are serialized through ``BookLockRegistry`` so
    that reading-time flushes, highlight appends and position updates cannot
    overwrite each other. A book that disappears between the caller's
    request and the write (e.g. deleted) is logged and reported as None.
    StorageIoError is not handled here.
    """

    def __init__(
        self,
        repository: BookRepository,
        locks: Optional[BookLockRegistry] = None,
    ) -> None:
        if repository is None:
            raise ValueError("BookRepository must not be None")
        self.repository = repository
        self.locks = locks if locks is not None else BookLockRegistry()

    def apply_delta(
        self,
        book_id: int,
        reading_time_delta_seconds: int = 0,
        chapter: Optional[str] = None,
        highlight_text: Optional[str] = None,
    ) -> Optional[BookRecord]:
        """Add reading time and/or append a highlight to a book.

        Args:
            book_id: Book to update.
            reading_time_delta_seconds: Seconds to add; negative values count as 0.
            chapter: Chapter the highlight belongs to.
            highlight_text: Highlight to append (only used together with chapter).

        Returns:
            The updated record, or None if the book does not exist.
        """
        delta = max(0, int(reading_time_delta_seconds or 0))
        add_highlight = chapter is not None and highlight_text is not None

        with self.locks.lock_for(book_id):
            current = self._read(book_id)
            if current is None:
                return None
            if delta == 0 and not add_highlight:
                return current

            highlights = {name: list(texts) for name, texts in current.highlights.items()}
            if add_highlight:
                highlights.setdefault(chapter, []).append(highlight_text)

            updated = replace(
                current,
                total_reading_time=current.total_reading_time + delta,
                highlights=highlights,
            )
            stored = self._write(updated)

        if stored is not None:
            logger.debug(
                "Merged into book %d: +%ds, highlight=%s", book_id, delta, add_highlight
            )
        return stored

    def record_position(self, book_id: int, locator: Dict[str, Any]) -> Optional[bool]:
        """Store a new reading position unless it equals the stored one.

        Returns:
            True if written, False if unchanged, None if the book does not exist.
        """
        with self.locks.lock_for(book_id):
            current = self._read(book_id)
            if current is None:
                return None
            if current.last_locator == locator:
                return False
            stored = self._write(replace(current, last_locator=dict(locator)))
        if stored is None:
            return None
        return True

    def _read(self, book_id: int) -> Optional[BookRecord]:
        try:
            return self.repository.get_by_id(book_id)
        except NotFound:
            logger.warning("Skipping update for missing book %d", book_id)
            return None

    def _write(self, record: BookRecord) -> Optional[BookRecord]:
        try:
            return self.repository.update(record)
        except NotFound:
            logger.warning("Book %d was removed before the update was written", record.id)
            return None
