"""Progress Sync - persists the latest reading position reported by the renderer."""

import logging
from enum import Enum

from PySide6.QtCore import QObject, Signal, Slot

from epub_library.core.errors import DecodeError
from epub_library.core.locator import (
    LocatorPayload,
    decode_locator,
    encode_locator,
    missing_fields,
)
from epub_library.services.metadata_merge import MetadataMergeEngine

logger = logging.getLogger(__name__)


class SyncOutcome(Enum):
    WRITTEN = "written"
    UNCHANGED = "unchanged"
    INVALID = "invalid"
    NOT_FOUND = "not_found"


class ProgressSync(QObject):
    """Consumes position events and writes changed positions.

    Events are applied in arrival order. No locator field is treated as an
    authoritative ordering key, so a stale event that arrives last replaces
    a newer position.
    """

    position_saved = Signal(int)  # book_id

    def __init__(self, merge_engine: MetadataMergeEngine) -> None:
        super().__init__()

        if merge_engine is None:
            raise ValueError("MetadataMergeEngine must not be None")
        self._merge_engine = merge_engine

    @Slot(int, object)
    def handle_position_event(self, book_id: int, payload: LocatorPayload) -> SyncOutcome:
        """Validate a position event and store it if the position moved.

        Args:
            book_id: Library id of the book being read.
            payload: Locator as JSON text or decoded mapping.

        Returns:
            SyncOutcome describing what happened to the event.
        """
        try:
            locator = decode_locator(payload)
        except DecodeError as e:
            logger.warning("Dropping undecodable position for book %d: %s", book_id, e)
            return SyncOutcome.INVALID

        # Compare in stored form: mappings may hold tuples or non-JSON values.
        try:
            locator = decode_locator(encode_locator(locator))
        except (TypeError, ValueError) as e:
            logger.warning("Dropping unserializable position for book %d: %s", book_id, e)
            return SyncOutcome.INVALID

        missing = missing_fields(locator)
        if missing:
            logger.warning(
                "Dropping position for book %d missing %s", book_id, ", ".join(missing)
            )
            return SyncOutcome.INVALID

        written = self._merge_engine.record_position(book_id, locator)
        if written is None:
            return SyncOutcome.NOT_FOUND
        if not written:
            return SyncOutcome.UNCHANGED

        self.position_saved.emit(book_id)
        return SyncOutcome.WRITTEN
