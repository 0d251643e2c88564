"""Reader Session Coordinator - owns the live reading session."""

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal, Slot

from epub_library.core import BookRecord
from epub_library.core.errors import LibraryError
from epub_library.core.locator import LocatorPayload
from epub_library.io import BookRepository
from epub_library.services import (
    DocumentRenderer,
    MetadataMergeEngine,
    OpenRequest,
    ProgressSync,
    ReadingPreferences,
    ReadingSessionTracker,
    SyncOutcome,
)

logger = logging.getLogger(__name__)

TrackerFactory = Callable[[int, MetadataMergeEngine], ReadingSessionTracker]


class ReaderSessionCoordinator(QObject):
    """
    Connects the external renderer with the library engine.

    Only one session tracker is alive at a time: opening a book flushes
    the previous session first. Position events from the renderer are
    routed to ProgressSync for the book currently open.
    """

    book_opened = Signal(int)  # book_id
    book_closed = Signal(int, int)  # book_id, seconds saved
    open_failed = Signal(int, str)  # book_id, reason

    def __init__(
        self,
        renderer: DocumentRenderer,
        repository: BookRepository,
        merge_engine: MetadataMergeEngine,
        progress_sync: ProgressSync,
        preferences: ReadingPreferences,
        tracker_factory: Optional[TrackerFactory] = None,
    ):
        super().__init__()

        if renderer is None:
            raise ValueError("DocumentRenderer must not be None")
        if repository is None:
            raise ValueError("BookRepository must not be None")
        if merge_engine is None:
            raise ValueError("MetadataMergeEngine must not be None")
        if progress_sync is None:
            raise ValueError("ProgressSync must not be None")
        if preferences is None:
            raise ValueError("ReadingPreferences must not be None")

        self.renderer = renderer
        self.repository = repository
        self.merge_engine = merge_engine
        self.progress_sync = progress_sync
        self.preferences = preferences
        self._tracker_factory = tracker_factory or ReadingSessionTracker

        # Session state
        self.tracker: Optional[ReadingSessionTracker] = None

    @property
    def current_book_id(self) -> Optional[int]:
        return self.tracker.book_id if self.tracker else None

    @Slot(int)
    def open_book(self, book_id: int) -> bool:
        """
        Open a book in the renderer and start tracking reading time.

        Args:
            book_id: Library id of the book to open.

        Returns:
            True if the renderer accepted the book.
        """
        try:
            book = self.repository.get_by_id(book_id)
        except LibraryError as e:
            self._fail(book_id, str(e))
            return False

        if not book.file_path.exists():
            self._fail(book_id, f"Book file not found for \"{book.title}\": {book.file_path}")
            return False

        self.close_book()
        self.tracker = self._tracker_factory(book.id, self.merge_engine)

        try:
            self.renderer.open(self._build_request(book))
        except RuntimeError as e:
            logger.error("Renderer failed to open %s: %s", book.file_path, e)
            self.close_book()
            self._fail(book_id, str(e))
            return False

        self.tracker.start()
        self.book_opened.emit(book.id)
        return True

    @Slot()
    def close_book(self) -> int:
        """Flush the current session. Returns the seconds saved."""
        tracker = self.tracker
        if tracker is None:
            return 0
        self.tracker = None
        seconds = tracker.stop_and_flush()
        self.book_closed.emit(tracker.book_id, seconds)
        tracker.deleteLater()
        return seconds

    @Slot(object)
    def handle_position(self, payload: LocatorPayload) -> Optional[SyncOutcome]:
        """Route a renderer position event to the open book."""
        book_id = self.current_book_id
        if book_id is None:
            logger.debug("Ignoring position event with no book open")
            return None
        return self.progress_sync.handle_position_event(book_id, payload)

    @Slot(str, str)
    def add_highlight(self, chapter: str, text: str) -> Optional[BookRecord]:
        """Append a highlight to the open book."""
        book_id = self.current_book_id
        if book_id is None:
            return None
        return self.merge_engine.apply_delta(book_id, chapter=chapter, highlight_text=text)

    def _build_request(self, book: BookRecord) -> OpenRequest:
        return OpenRequest(
            file_path=book.file_path,
            identifier=f"book_{book.id}",
            last_locator=dict(book.last_locator) if book.last_locator else None,
            scroll_direction=self.preferences.scroll_direction,
        )

    def _fail(self, book_id: int, reason: str) -> None:
        logger.warning("Cannot open book %s: %s", book_id, reason)
        self.open_failed.emit(book_id, reason)
