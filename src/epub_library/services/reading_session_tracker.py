"""Reading Session Tracker - accumulates reading time for the open book."""

import logging
from datetime import datetime
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from epub_library.core import ReadingSession, SessionState
from epub_library.core.errors import LibraryError
from epub_library.services.metadata_merge import MetadataMergeEngine

logger = logging.getLogger(__name__)


class ReadingSessionTracker(QObject):
    """
    Idle -> Tracking -> Idle state machine for one book.

    Elapsed seconds are counted by a QTimer on the Qt event loop and only
    written to the store on ``stop_and_flush()``, so a session costs one
    write instead of one per second. Time of a session whose flush fails
    is dropped, not retried.
    """

    tracking_started = Signal(int)  # book_id
    time_saved = Signal(int, int)  # book_id, seconds
    flush_failed = Signal(int, str)  # book_id, error message

    def __init__(
        self,
        book_id: int,
        merge_engine: MetadataMergeEngine,
        clock: Optional[Callable[[], datetime]] = None,
        tick_interval_ms: int = 1000,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)

        if merge_engine is None:
            raise ValueError("MetadataMergeEngine must not be None")

        self.book_id = book_id
        self._merge_engine = merge_engine
        self._clock = clock or datetime.now
        self._session: Optional[ReadingSession] = None

        self._timer = QTimer(self)
        self._timer.setInterval(tick_interval_ms)
        self._timer.timeout.connect(self.tick)

    @property
    def state(self) -> SessionState:
        return SessionState.TRACKING if self._session is not None else SessionState.IDLE

    @property
    def session(self) -> Optional[ReadingSession]:
        return self._session

    @property
    def elapsed_seconds(self) -> int:
        return self._session.elapsed_seconds if self._session else 0

    def start(self) -> None:
        """Begin a session. Does nothing if one is already running."""
        if self._session is not None:
            return
        self._session = ReadingSession(book_id=self.book_id, started_at=self._clock())
        self._timer.start()
        logger.info("Started reading session for book %d", self.book_id)
        self.tracking_started.emit(self.book_id)

    @Slot()
    def tick(self) -> None:
        if self._session is None:
            return
        self._session.elapsed_seconds += 1

    def stop_and_flush(self) -> int:
        """End the session and persist its reading time.

        Returns:
            Seconds written to the store (0 if idle, empty or failed).
        """
        # Stop ticking before the counter is read.
        self._timer.stop()
        session = self._session
        self._session = None
        if session is None:
            return 0

        seconds = session.elapsed_seconds
        if seconds <= 0:
            logger.info("Reading session for book %d ended with no time", self.book_id)
            return 0

        try:
            updated = self._merge_engine.apply_delta(
                self.book_id, reading_time_delta_seconds=seconds
            )
        except LibraryError as e:
            logger.error(
                "Lost %ds of reading time for book %d: %s", seconds, self.book_id, e
            )
            self.flush_failed.emit(self.book_id, str(e))
            return 0

        if updated is None:
            return 0
        logger.info("Saved %ds of reading time for book %d", seconds, self.book_id)
        self.time_saved.emit(self.book_id, seconds)
        return seconds
