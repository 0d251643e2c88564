"""
Epub Library - Persistent state engine for a personal EPUB library.

This package keeps the reading state of imported books:
- Versioned SQLite store with forward-only schema migrations
- Book records with reading position, reading time and highlights
- Reading session time tracking
- Idempotent reading position sync
"""

__version__ = "0.1.0"

# Make key components available at package level
from epub_library.core import BookRecord, LibraryError
from epub_library.io import BookRepository, DatabaseManager
from epub_library.services import MetadataMergeEngine, ProgressSync, ReadingSessionTracker

__all__ = [
    "BookRecord",
    "LibraryError",
    "BookRepository",
    "DatabaseManager",
    "MetadataMergeEngine",
    "ProgressSync",
    "ReadingSessionTracker",
]
