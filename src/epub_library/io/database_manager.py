"""SQLite-backed store handle for the reading library."""

import logging
import sqlite3
from pathlib import Path
from typing import Optional, Union

from epub_library.core.errors import StorageIoError
from epub_library.io.schema_migrations import LATEST_SCHEMA_VERSION, SchemaMigrationManager

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class DatabaseManager:
    """Owns the SQLite connection and its open/migrate/close lifecycle.

    Constructed once by the composition root and handed to the components
    that need the store. ``open()`` is idempotent: the first call connects
    and migrates, later calls return the same connection.
    """

    def __init__(self, db_path: Union[str, Path], timeout: float = 5.0) -> None:
        self.db_path = db_path if db_path == MEMORY_DB else Path(db_path)
        self.timeout = timeout
        self.schema_version: Optional[int] = None
        self._connection: Optional[sqlite3.Connection] = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StorageIoError("Database is not open")
        return self._connection

    def open(self, target_version: int = LATEST_SCHEMA_VERSION) -> sqlite3.Connection:
        """Connect and migrate the store to ``target_version``.

        Raises:
            StorageIoError: If the database file cannot be opened.
            MigrationError: If the schema cannot reach the target version.
        """
        if self._connection is not None:
            return self._connection

        try:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(
                str(self.db_path), timeout=self.timeout, check_same_thread=False
            )
            connection.row_factory = sqlite3.Row
        except (OSError, sqlite3.Error) as e:
            raise StorageIoError(f"Failed to open database {self.db_path}: {e}") from e

        try:
            self.schema_version = SchemaMigrationManager(connection).migrate(target_version)
        except Exception:
            connection.close()
            raise

        self._connection = connection
        logger.info(
            "Opened library database %s (schema version %d)",
            self.db_path,
            self.schema_version,
        )
        return connection

    def close(self) -> None:
        if self._connection is None:
            return
        self._connection.close()
        self._connection = None
        logger.debug("Closed library database %s", self.db_path)

    def __enter__(self) -> "DatabaseManager":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
