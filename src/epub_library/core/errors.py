"""Typed failures raised by the library state engine."""

from typing import Optional


class LibraryError(RuntimeError):
    """Base class for every failure reported by the library engine."""


class MigrationError(LibraryError):
    """The store schema cannot be brought to the requested version.

    Fatal: raised for downgrades, unknown target versions, failing
    upgrade steps and an unreadable stored version.
    """


class StorageIoError(LibraryError):
    """A read or write against the store failed."""


class NotFound(LibraryError):
    """An operation referenced a book id that does not exist."""

    def __init__(self, book_id: Optional[int], message: Optional[str] = None) -> None:
        self.book_id = book_id
        super().__init__(message or f"Book not found: {book_id}")


class DecodeError(LibraryError, ValueError):
    """A persisted blob (highlights map or locator) could not be parsed."""
