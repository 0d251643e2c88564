"""Data access layer for book record persistence."""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

from epub_library.core import BookRecord, title_from_path
from epub_library.core.errors import DecodeError, NotFound, StorageIoError
from epub_library.core.locator import decode_locator, encode_locator
from epub_library.io.schema_migrations import BOOKS_TABLE

logger = logging.getLogger(__name__)

WRITABLE_COLUMNS = (
    "title",
    "file_path",
    "last_locator",
    "total_reading_time",
    "highlights",
    "cover_image_path",
    "open_library_key",
)


def decode_highlights(raw: Optional[str]) -> Dict[str, List[str]]:
    """Parse the serialized highlights map.

    Raises:
        DecodeError: If the value is not a JSON object of string lists.
    """
    if raw is None or not raw.strip():
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Highlights are not valid JSON: {e}") from e
    if not isinstance(decoded, dict):
        raise DecodeError("Highlights must be a JSON object")

    highlights: Dict[str, List[str]] = {}
    for chapter, texts in decoded.items():
        if not isinstance(texts, list):
            raise DecodeError(f"Highlights for chapter {chapter!r} are not a list")
        if texts:
            highlights[str(chapter)] = [str(text) for text in texts]
    return highlights


def encode_highlights(highlights: Dict[str, List[str]]) -> str:
    return json.dumps(highlights, ensure_ascii=False)


class BookRepository:
    """Manages persistence of book records in the database.

    Storage failures are raised as StorageIoError and unknown ids as
    NotFound. Corrupt highlight or locator blobs are not fatal: they are
    logged and read back as empty values.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize repository with a migrated database connection.

        Args:
            connection: SQLite connection with the books table created.

        Raises:
            ValueError: If connection is None.
            StorageIoError: If the table layout cannot be read.
        """
        if connection is None:
            raise ValueError("Database connection required")
        self.connection = connection
        self.connection.row_factory = sqlite3.Row
        try:
            rows = self.connection.execute(f"PRAGMA table_info({BOOKS_TABLE})").fetchall()
        except sqlite3.Error as e:
            raise StorageIoError(f"Failed to inspect books table: {e}") from e
        present = {row["name"] for row in rows}
        # Older schema versions lack some optional columns.
        self._columns = tuple(name for name in WRITABLE_COLUMNS if name in present)

    def insert_or_replace(self, record: BookRecord) -> int:
        """Insert a record, or fully replace the record with the same id.

        Returns:
            int: The id of the stored record.

        Raises:
            StorageIoError: If the write fails (including a file_path that
                belongs to another record).
        """
        values = self._record_to_values(record)
        columns = list(self._columns)
        params = [values[name] for name in columns]
        if record.id is not None:
            columns.insert(0, "id")
            params.insert(0, record.id)

        assignments = ", ".join(f"{name} = excluded.{name}" for name in self._columns)
        sql = (
            f"INSERT INTO {BOOKS_TABLE} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)}) "
            f"ON CONFLICT(id) DO UPDATE SET {assignments}"
        )
        try:
            cur = self.connection.execute(sql, params)
            self.connection.commit()
        except sqlite3.Error as e:
            self.connection.rollback()
            raise StorageIoError(f"Failed to store book {record.title!r}: {e}") from e

        book_id = record.id if record.id is not None else cur.lastrowid
        logger.debug("Stored book %d: %s", book_id, record.title)
        return book_id

    def import_book(
        self,
        file_path: Path,
        title: str = "",
        cover_image_path: Optional[str] = None,
        open_library_key: Optional[str] = None,
    ) -> Optional[BookRecord]:
        """Add a newly imported document to the library.

        The path is canonicalized and checked for an existing record first;
        importing a path already present leaves that record unchanged.

        Returns:
            BookRecord: The new record, or None if the path was already imported.

        Raises:
            StorageIoError: If the database access fails.
        """
        file_path = Path(file_path).resolve()
        if self.exists_by_path(file_path):
            logger.info("Book already in library: %s", file_path)
            return None

        record = BookRecord(
            id=None,
            title=title.strip() if title else title_from_path(file_path),
            file_path=file_path,
            cover_image_path=cover_image_path,
            open_library_key=open_library_key,
        )
        values = self._record_to_values(record)
        columns = list(self._columns)
        try:
            cur = self.connection.execute(
                f"INSERT INTO {BOOKS_TABLE} ({', '.join(columns)}) "
                f"VALUES ({', '.join('?' for _ in columns)})",
                [values[name] for name in columns],
            )
            self.connection.commit()
        except sqlite3.IntegrityError:
            self.connection.rollback()
            logger.info("Book already in library: %s", file_path)
            return None
        except sqlite3.Error as e:
            self.connection.rollback()
            raise StorageIoError(f"Failed to import book {file_path}: {e}") from e

        logger.info("Imported book %d: %s", cur.lastrowid, record.title)
        return self.get_by_id(cur.lastrowid)

    def list_all(self) -> List[BookRecord]:
        """Retrieve all books ordered by title (empty list if none exist).

        Raises:
            StorageIoError: If database query fails.
        """
        try:
            rows = self.connection.execute(
                f"SELECT * FROM {BOOKS_TABLE} ORDER BY title ASC, id ASC"
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageIoError(f"Failed to retrieve books: {e}") from e
        return [self._row_to_book(row) for row in rows]

    def get_by_id(self, book_id: int) -> BookRecord:
        """Retrieve a book by id.

        Raises:
            NotFound: If no book has this id.
            StorageIoError: If database query fails.
        """
        try:
            row = self.connection.execute(
                f"SELECT * FROM {BOOKS_TABLE} WHERE id = ?", (book_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageIoError(f"Failed to retrieve book {book_id}: {e}") from e
        if row is None:
            raise NotFound(book_id)
        return self._row_to_book(row)

    def find_by_path(self, file_path: Path) -> Optional[BookRecord]:
        file_path = Path(file_path).resolve()
        try:
            row = self.connection.execute(
                f"SELECT * FROM {BOOKS_TABLE} WHERE file_path = ?", (str(file_path),)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageIoError(f"Failed to look up book {file_path}: {e}") from e
        return self._row_to_book(row) if row else None

    def exists_by_path(self, file_path: Path) -> bool:
        return self.find_by_path(file_path) is not None

    def exists_by_open_library_key(self, open_library_key: str) -> bool:
        """Check whether a book downloaded from this catalogue entry exists."""
        if "open_library_key" not in self._columns:
            return False
        try:
            row = self.connection.execute(
                f"SELECT 1 FROM {BOOKS_TABLE} WHERE open_library_key = ? LIMIT 1",
                (open_library_key,),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageIoError(f"Failed to look up key {open_library_key}: {e}") from e
        return row is not None

    def update(self, record: BookRecord) -> BookRecord:
        """Overwrite every field of an existing record.

        Returns:
            BookRecord: The record as stored.

        Raises:
            NotFound: If the record has no id or the id is unknown.
            StorageIoError: If database write fails.
        """
        if record.id is None:
            raise NotFound(None, "Cannot update a book that was never stored")

        values = self._record_to_values(record)
        assignments = ", ".join(f"{name} = ?" for name in self._columns)
        try:
            cur = self.connection.execute(
                f"UPDATE {BOOKS_TABLE} SET {assignments} WHERE id = ?",
                [values[name] for name in self._columns] + [record.id],
            )
            self.connection.commit()
        except sqlite3.Error as e:
            self.connection.rollback()
            raise StorageIoError(f"Failed to update book {record.id}: {e}") from e
        if cur.rowcount == 0:
            raise NotFound(record.id)

        return self.get_by_id(record.id)

    def delete_by_id(self, book_id: int) -> int:
        """Remove a book record (does NOT delete the document file).

        Returns:
            int: Number of rows removed (0 if the book was already gone).

        Raises:
            StorageIoError: If database write fails.
        """
        try:
            cur = self.connection.execute(
                f"DELETE FROM {BOOKS_TABLE} WHERE id = ?", (book_id,)
            )
            self.connection.commit()
        except sqlite3.Error as e:
            self.connection.rollback()
            raise StorageIoError(f"Failed to delete book {book_id}: {e}") from e
        if cur.rowcount:
            logger.info("Deleted book record %d", book_id)
        return cur.rowcount

    def _record_to_values(self, record: BookRecord) -> Dict[str, Any]:
        """Map a record to column values.

        Raises:
            StorageIoError: If the record sets a field this schema version
                has no column for.
        """
        values = {
            "title": record.title,
            "file_path": str(record.file_path),
            "last_locator": encode_locator(record.last_locator),
            "total_reading_time": record.total_reading_time,
            "highlights": encode_highlights(record.highlights),
            "cover_image_path": record.cover_image_path,
            "open_library_key": record.open_library_key,
        }
        unsupported = [
            name
            for name in WRITABLE_COLUMNS
            if name not in self._columns and values[name] is not None
        ]
        if unsupported:
            raise StorageIoError(
                f"Store schema has no column for {', '.join(unsupported)}"
            )
        return values

    @staticmethod
    def _row_to_book(row: sqlite3.Row) -> BookRecord:
        """Convert database row to BookRecord entity."""
        keys = row.keys()
        book_id = row["id"]

        try:
            highlights = decode_highlights(row["highlights"])
        except DecodeError as e:
            logger.warning("Ignoring unreadable highlights for book %d: %s", book_id, e)
            highlights = {}
        try:
            locator = decode_locator(row["last_locator"])
        except DecodeError as e:
            logger.warning("Ignoring unreadable locator for book %d: %s", book_id, e)
            locator = {}

        return BookRecord(
            id=book_id,
            title=row["title"],
            file_path=Path(row["file_path"]),
            last_locator=locator,
            total_reading_time=max(0, row["total_reading_time"] or 0),
            highlights=highlights,
            cover_image_path=row["cover_image_path"] if "cover_image_path" in keys else None,
            open_library_key=row["open_library_key"] if "open_library_key" in keys else None,
        )
