"""Domain layer - Book records, locators and session state."""

from .book_record import BookRecord, format_duration, title_from_path
from .errors import DecodeError, LibraryError, MigrationError, NotFound, StorageIoError
from .locator import EMPTY_LOCATOR, decode_locator, encode_locator, is_valid_locator
from .reading_session import ReadingSession, SessionState

__all__ = [
    "BookRecord",
    "format_duration",
    "title_from_path",
    "LibraryError",
    "MigrationError",
    "StorageIoError",
    "NotFound",
    "DecodeError",
    "EMPTY_LOCATOR",
    "decode_locator",
    "encode_locator",
    "is_valid_locator",
    "ReadingSession",
    "SessionState",
]
