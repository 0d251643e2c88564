"""Schema version management for the library store.

The store records its own schema version in the ``schema_meta`` table.
A fresh store is created directly at the requested version; an existing
store is upgraded one step at a time. Downgrades are refused.
"""

import logging
import sqlite3
from dataclasses import dataclass
from typing import Optional, Tuple

from epub_library.core.errors import MigrationError

logger = logging.getLogger(__name__)

BOOKS_TABLE = "books"
SCHEMA_VERSION_KEY = "schema_version"

# Version 1 layout.
BASE_COLUMNS: Tuple[str, ...] = (
    "id INTEGER PRIMARY KEY AUTOINCREMENT",
    "title TEXT NOT NULL",
    "file_path TEXT NOT NULL UNIQUE",
    "last_locator TEXT NOT NULL DEFAULT '{}'",
    "total_reading_time INTEGER NOT NULL DEFAULT 0",
    "highlights TEXT NOT NULL DEFAULT '{}'",
)


@dataclass(frozen=True)
class MigrationStep:
    """Adds one column to the books table."""

    version: int
    column_definition: str

    @property
    def sql(self) -> str:
        return f"ALTER TABLE {BOOKS_TABLE} ADD COLUMN {self.column_definition}"


MIGRATION_STEPS: Tuple[MigrationStep, ...] = (
    MigrationStep(version=2, column_definition="cover_image_path TEXT"),
    MigrationStep(version=3, column_definition="open_library_key TEXT"),
)

LATEST_SCHEMA_VERSION = MIGRATION_STEPS[-1].version


class SchemaMigrationManager:
    """Brings a SQLite connection to a target schema version."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        if connection is None:
            raise ValueError("Database connection required")
        self.connection = connection

    def current_version(self) -> Optional[int]:
        """Return the stored schema version, or None for an empty store.

        Raises:
            MigrationError: If the version cannot be read or decoded.
        """
        try:
            has_meta = self._table_exists("schema_meta")
            has_books = self._table_exists(BOOKS_TABLE)
            if not has_meta:
                if has_books:
                    raise MigrationError(
                        "Store has a books table but no recorded schema version"
                    )
                return None
            row = self.connection.execute(
                "SELECT value FROM schema_meta WHERE key = ?",
                (SCHEMA_VERSION_KEY,),
            ).fetchone()
        except sqlite3.Error as e:
            raise MigrationError(f"Failed to read schema version: {e}") from e

        if row is None:
            raise MigrationError("Schema metadata exists but holds no version")
        try:
            return int(row[0])
        except (TypeError, ValueError) as e:
            raise MigrationError(f"Unreadable schema version: {row[0]!r}") from e

    def migrate(self, target_version: int = LATEST_SCHEMA_VERSION) -> int:
        """Create or upgrade the schema to ``target_version``.

        Args:
            target_version: Version to reach (1..LATEST_SCHEMA_VERSION).

        Returns:
            The schema version after migration.

        Raises:
            MigrationError: On downgrade, unknown target or a failing step.
        """
        if not 1 <= target_version <= LATEST_SCHEMA_VERSION:
            raise MigrationError(
                f"Unknown schema version {target_version} "
                f"(supported: 1..{LATEST_SCHEMA_VERSION})"
            )

        current = self.current_version()
        if current is None:
            self._create_schema(target_version)
            return target_version
        if current > target_version:
            raise MigrationError(
                f"Store schema version {current} is newer than {target_version}; "
                "downgrade is not supported"
            )
        if current == target_version:
            logger.debug("Schema already at version %d", current)
            return current

        for step in MIGRATION_STEPS:
            if current < step.version <= target_version:
                self._apply_step(step)
        return target_version

    def _create_schema(self, version: int) -> None:
        columns = list(BASE_COLUMNS)
        columns.extend(
            step.column_definition for step in MIGRATION_STEPS if step.version <= version
        )
        try:
            self.connection.execute("BEGIN")
            self.connection.execute(
                f"CREATE TABLE {BOOKS_TABLE} ({', '.join(columns)})"
            )
            self.connection.execute(
                """
                CREATE TABLE schema_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            self._write_version(version)
            self.connection.commit()
        except sqlite3.Error as e:
            self.connection.rollback()
            raise MigrationError(f"Failed to create schema: {e}") from e
        logger.info("Created library schema at version %d", version)

    def _apply_step(self, step: MigrationStep) -> None:
        try:
            self.connection.execute("BEGIN")
            try:
                self.connection.execute(step.sql)
            except sqlite3.OperationalError as e:
                if "duplicate column" not in str(e).lower():
                    raise
                logger.debug(
                    "Schema step %d already applied: %s", step.version, step.column_definition
                )
            self._write_version(step.version)
            self.connection.commit()
        except sqlite3.Error as e:
            self.connection.rollback()
            raise MigrationError(
                f"Schema upgrade to version {step.version} failed: {e}"
            ) from e
        logger.info("Upgraded library schema to version %d", step.version)

    def _write_version(self, version: int) -> None:
        self.connection.execute(
            """
            INSERT INTO schema_meta (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (SCHEMA_VERSION_KEY, str(version)),
        )

    def _table_exists(self, name: str) -> bool:
        row = self.connection.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (name,),
        ).fetchone()
        return row is not None
