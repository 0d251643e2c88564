"""Library Coordinator - Orchestrates book import, editing and removal."""

import logging
from pathlib import Path
from typing import List, Optional

from PySide6.QtCore import QObject, Signal, Slot

from epub_library.core import BookRecord
from epub_library.core.errors import LibraryError
from epub_library.io import BookRepository
from epub_library.services import BookLockRegistry

from .reader_session_coordinator import ReaderSessionCoordinator

logger = logging.getLogger(__name__)


class LibraryCoordinator(QObject):
    """Manages library operations requested by the UI.

    Responsibilities:
    - Import books (skipping paths already in the library)
    - Load books ordered by title
    - Edit title and cover
    - Delete books, ending the reading session of a book being deleted

    Failures are reported through ``error_occurred`` as non-blocking
    notices; copying and deleting document files is left to the caller.
    """

    library_changed = Signal()
    error_occurred = Signal(str, str)  # title, message

    def __init__(
        self,
        library_repository: BookRepository,
        reader_coordinator: ReaderSessionCoordinator,
        locks: Optional[BookLockRegistry] = None,
    ):
        super().__init__()

        if library_repository is None:
            raise ValueError("BookRepository must not be None")
        if reader_coordinator is None:
            raise ValueError("ReaderSessionCoordinator must not be None")

        self.library_repository = library_repository
        self.reader_coordinator = reader_coordinator
        self.locks = locks if locks is not None else reader_coordinator.merge_engine.locks

    def import_book(
        self,
        file_path: Path,
        title: str = "",
        cover_image_path: Optional[str] = None,
        open_library_key: Optional[str] = None,
    ) -> Optional[BookRecord]:
        """Add an already copied document to the library.

        Args:
            file_path: Location of the document in the library folder.
            title: Custom title (defaults to the file name without .epub).
            cover_image_path: Optional bundled cover reference.
            open_library_key: Catalogue key when the book was downloaded.

        Returns:
            BookRecord: The new record, or None if it was already imported
            or the import failed.
        """
        try:
            if open_library_key and self.library_repository.exists_by_open_library_key(
                open_library_key
            ):
                self.error_occurred.emit(
                    "Already in Library", f"This book is already in your library ({open_library_key})."
                )
                return None
            book = self.library_repository.import_book(
                file_path,
                title=title,
                cover_image_path=cover_image_path,
                open_library_key=open_library_key,
            )
        except LibraryError as e:
            self.error_occurred.emit("Import Error", str(e))
            return None

        if book is None:
            self.error_occurred.emit("Already in Library", "Book already in library.")
            return None

        self.library_changed.emit()
        return book

    def list_books(self) -> List[BookRecord]:
        """Load all books ordered by title (empty list on failure)."""
        try:
            return self.library_repository.list_all()
        except LibraryError as e:
            self.error_occurred.emit("Library Load Error", str(e))
            return []

    @Slot(int, str)
    def rename_book(self, book_id: int, new_title: str) -> Optional[BookRecord]:
        """Change the display title of a book."""
        if not new_title or not new_title.strip():
            self.error_occurred.emit("Title Update Error", "Book title cannot be empty")
            return None
        return self._edit(book_id, "Title Update Error", title=new_title.strip())

    @Slot(int, str)
    def set_cover(self, book_id: int, cover_image_path: str) -> Optional[BookRecord]:
        return self._edit(
            book_id, "Cover Update Error", cover_image_path=cover_image_path or None
        )

    @Slot(int)
    def delete_book(self, book_id: int) -> bool:
        """Remove a book record (does NOT delete the document file).

        Returns:
            True if a record was removed.
        """
        if self.reader_coordinator.current_book_id == book_id:
            self.reader_coordinator.close_book()

        try:
            with self.locks.lock_for(book_id):
                removed = self.library_repository.delete_by_id(book_id)
        except LibraryError as e:
            self.error_occurred.emit("Delete Error", str(e))
            return False

        self.locks.forget(book_id)
        if not removed:
            logger.info("Book %d was already removed", book_id)
            return False
        self.library_changed.emit()
        return True

    def _edit(self, book_id: int, error_title: str, **changes) -> Optional[BookRecord]:
        try:
            with self.locks.lock_for(book_id):
                book = self.library_repository.get_by_id(book_id)
                for name, value in changes.items():
                    setattr(book, name, value)
                updated = self.library_repository.update(book)
        except LibraryError as e:
            self.error_occurred.emit(error_title, str(e))
            return None

        self.library_changed.emit()
        return updated
