"""I/O layer - Store lifecycle, schema migrations and book persistence."""

from .book_repository import BookRepository
from .database_manager import DatabaseManager
from .schema_migrations import LATEST_SCHEMA_VERSION, SchemaMigrationManager

__all__ = [
    "BookRepository",
    "DatabaseManager",
    "SchemaMigrationManager",
    "LATEST_SCHEMA_VERSION",
]
