"""Services layer - merge engine, session tracking, progress sync and settings."""

from epub_library.services.book_locks import BookLockRegistry
from epub_library.services.document_renderer import (
	DocumentRenderer,
	LoggingRenderer,
	OpenRequest,
)
from epub_library.services.metadata_merge import MetadataMergeEngine
from epub_library.services.progress_sync import ProgressSync, SyncOutcome
from epub_library.services.reading_preferences import (
	FontFamily,
	LibraryViewType,
	ReadingPreferences,
	ScrollDirection,
	ThemeMode,
)
from epub_library.services.reading_session_tracker import ReadingSessionTracker
from epub_library.services.settings_manager import SettingsManager

__all__ = [
	"BookLockRegistry",
	"DocumentRenderer",
	"LoggingRenderer",
	"OpenRequest",
	"MetadataMergeEngine",
	"ProgressSync",
	"SyncOutcome",
	"ReadingPreferences",
	"ScrollDirection",
	"FontFamily",
	"ThemeMode",
	"LibraryViewType",
	"ReadingSessionTracker",
	"SettingsManager",
]
