"""Main entry point for the epub library engine."""

import logging
import sys
from datetime import timedelta
from typing import List, Optional

from PySide6.QtCore import QCoreApplication

from epub_library.coordinators import LibraryCoordinator, ReaderSessionCoordinator
from epub_library.core import format_duration
from epub_library.core.errors import LibraryError
from epub_library.io import BookRepository, DatabaseManager
from epub_library.services import (
    BookLockRegistry,
    LoggingRenderer,
    MetadataMergeEngine,
    ProgressSync,
    ReadingPreferences,
    SettingsManager,
)

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Bootstrap the engine following the Composition Root pattern.

    This is the only place that knows how to instantiate and wire the
    store and its components. EPUB paths given on the command line are
    imported, then the library is printed.
    """
    argv = list(sys.argv if argv is None else argv)

    # 1. Initialize Application
    app = QCoreApplication.instance() or QCoreApplication(argv)
    app.setApplicationName("Epub Library")
    app.setOrganizationName("EpubLibrary")

    # 2. Configuration and logging
    settings = SettingsManager()
    logging.basicConfig(
        level=settings.get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # 3. Open the store; failures here abort startup
    database = DatabaseManager(
        settings.get_database_path(), timeout=settings.get_database_timeout()
    )
    try:
        database.open()
    except LibraryError as e:
        logger.error("Cannot open library: %s", e)
        return 1

    try:
        # 4. Services sharing one lock registry
        repository = BookRepository(database.connection)
        locks = BookLockRegistry()
        merge_engine = MetadataMergeEngine(repository, locks=locks)
        progress_sync = ProgressSync(merge_engine)

        # 5. Coordinators (Dependency Injection)
        reader = ReaderSessionCoordinator(
            renderer=LoggingRenderer(),
            repository=repository,
            merge_engine=merge_engine,
            progress_sync=progress_sync,
            preferences=ReadingPreferences(),
        )
        library = LibraryCoordinator(
            library_repository=repository,
            reader_coordinator=reader,
            locks=locks,
        )

        # 6. Signal Wiring
        library.error_occurred.connect(lambda title, message: print(f"{title}: {message}"))
        reader.book_closed.connect(
            lambda book_id, seconds: logger.info("Saved %ds for book %d", seconds, book_id)
        )

        for path in argv[1:]:
            library.import_book(path)
        for book in library.list_books():
            time_read = format_duration(timedelta(seconds=book.total_reading_time))
            print(
                f"{book.id:>4}  {book.title}  [{time_read}, "
                f"{book.progression * 100:.1f}%, {book.highlight_count} highlights]"
            )
        reader.close_book()
    except LibraryError as e:
        logger.error("Library operation failed: %s", e)
        return 1
    finally:
        database.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
