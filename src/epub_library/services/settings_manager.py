"""Settings Manager - Handles environment configuration for the library engine."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_DB_PATH = Path.home() / ".epub_library" / "books_database.db"
DEFAULT_DB_TIMEOUT = 5.0


class SettingsManager:
    """
    Manages engine configuration.

    Reads EPUB_LIBRARY_* variables from the environment, loading a .env
    file in the project root first.
    """

    def __init__(self, project_root: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            project_root: Path to project root where .env is located.
                         If None, searches upward from current file.
        """
        if project_root is None:
            current = Path(__file__).resolve()
            project_root = current.parent.parent.parent.parent

        env_path = project_root / ".env"
        load_dotenv(dotenv_path=env_path)

        self._project_root = project_root

    def get_database_path(self) -> Path:
        """Get the library database location."""
        value = os.getenv("EPUB_LIBRARY_DB_PATH")
        if value and value.strip():
            return Path(value.strip()).expanduser()
        return DEFAULT_DB_PATH

    def get_database_timeout(self) -> float:
        """Seconds SQLite waits on a locked database before failing."""
        value = os.getenv("EPUB_LIBRARY_DB_TIMEOUT")
        try:
            timeout = float(value) if value and value.strip() else DEFAULT_DB_TIMEOUT
        except ValueError:
            return DEFAULT_DB_TIMEOUT
        return timeout if timeout > 0 else DEFAULT_DB_TIMEOUT

    def get_log_level(self) -> int:
        value = (os.getenv("EPUB_LIBRARY_LOG_LEVEL") or "").strip().upper()
        level = logging.getLevelName(value) if value else logging.INFO
        return level if isinstance(level, int) else logging.INFO

    def reload_env(self) -> None:
        """Reload environment variables from .env file."""
        env_path = self._project_root / ".env"
        load_dotenv(dotenv_path=env_path, override=True)
