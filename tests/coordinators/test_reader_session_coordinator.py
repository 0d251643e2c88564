"""Unit tests for ReaderSessionCoordinator."""

from unittest.mock import MagicMock

import pytest
from PySide6.QtCore import QCoreApplication, QSettings

from epub_library.coordinators import ReaderSessionCoordinator
from epub_library.core import SessionState
from epub_library.io import BookRepository, DatabaseManager
from epub_library.services import (
    MetadataMergeEngine,
    ProgressSync,
    ReadingPreferences,
    ScrollDirection,
    SyncOutcome,
)


def ensure_qt_app():
    if QCoreApplication.instance() is None:
        QCoreApplication([])


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def repository(tmp_path):
    db = DatabaseManager(tmp_path / "books.db")
    db.open()
    yield BookRepository(db.connection)
    db.close()


@pytest.fixture
def merge_engine(repository):
    return MetadataMergeEngine(repository)


@pytest.fixture
def preferences(tmp_path):
    ensure_qt_app()
    prefs = ReadingPreferences(QSettings(str(tmp_path / "prefs.ini"), QSettings.IniFormat))
    prefs.update("scroll_direction", ScrollDirection.VERTICAL_SCROLL)
    return prefs


@pytest.fixture
def mock_renderer():
    return MagicMock()


@pytest.fixture
def coordinator(mock_renderer, repository, merge_engine, preferences):
    coordinator = ReaderSessionCoordinator(
        renderer=mock_renderer,
        repository=repository,
        merge_engine=merge_engine,
        progress_sync=ProgressSync(merge_engine),
        preferences=preferences,
    )
    yield coordinator
    coordinator.close_book()


@pytest.fixture
def book(repository, tmp_path):
    epub = tmp_path / "epubs" / "republic.epub"
    epub.parent.mkdir()
    epub.write_bytes(b"PK")
    return repository.import_book(epub)


LOCATOR = {
    "bookId": "book_1",
    "href": "book-2.xhtml",
    "created": 1718000000000,
    "locations": {"cfi": "epubcfi(/6/10!/4/2)", "progression": 0.3},
}


# ============================================================================
# Tests
# ============================================================================


def test_open_book_sends_request_and_starts_tracking(coordinator, mock_renderer, book):
    opened = []
    coordinator.book_opened.connect(lambda book_id: opened.append(book_id))

    assert coordinator.open_book(book.id) is True

    request = mock_renderer.open.call_args.args[0]
    assert request.file_path == book.file_path
    assert request.identifier == f"book_{book.id}"
    assert request.last_locator is None
    assert request.scroll_direction is ScrollDirection.VERTICAL_SCROLL
    assert coordinator.tracker.state is SessionState.TRACKING
    assert coordinator.current_book_id == book.id
    assert opened == [book.id]


def test_open_book_resumes_from_stored_locator(coordinator, mock_renderer, merge_engine, book):
    merge_engine.record_position(book.id, LOCATOR)

    coordinator.open_book(book.id)

    assert mock_renderer.open.call_args.args[0].last_locator == LOCATOR


def test_close_book_flushes_reading_time(coordinator, repository, book):
    closed = []
    coordinator.book_closed.connect(lambda book_id, seconds: closed.append((book_id, seconds)))
    coordinator.open_book(book.id)
    for _ in range(42):
        coordinator.tracker.tick()

    assert coordinator.close_book() == 42

    assert repository.get_by_id(book.id).total_reading_time == 42
    assert coordinator.tracker is None
    assert closed == [(book.id, 42)]


def test_opening_another_book_flushes_previous(coordinator, repository, book, tmp_path):
    other_path = tmp_path / "epubs" / "discourses.epub"
    other_path.write_bytes(b"PK")
    other = repository.import_book(other_path)
    coordinator.open_book(book.id)
    coordinator.tracker.tick()
    coordinator.tracker.tick()

    coordinator.open_book(other.id)

    assert repository.get_by_id(book.id).total_reading_time == 2
    assert coordinator.current_book_id == other.id


def test_missing_file_fails_open(coordinator, mock_renderer, repository, tmp_path):
    ghost = repository.import_book(tmp_path / "gone.epub")
    failures = []
    coordinator.open_failed.connect(lambda book_id, reason: failures.append(book_id))

    assert coordinator.open_book(ghost.id) is False

    mock_renderer.open.assert_not_called()
    assert coordinator.tracker is None
    assert failures == [ghost.id]


def test_unknown_book_fails_open(coordinator, mock_renderer):
    assert coordinator.open_book(999) is False
    mock_renderer.open.assert_not_called()


def test_renderer_failure_tears_session_down(coordinator, mock_renderer, book):
    mock_renderer.open.side_effect = RuntimeError("viewer crashed")
    failures = []
    coordinator.open_failed.connect(lambda book_id, reason: failures.append(reason))

    assert coordinator.open_book(book.id) is False

    assert coordinator.tracker is None
    assert failures == ["viewer crashed"]


def test_position_events_routed_to_open_book(coordinator, repository, book):
    coordinator.open_book(book.id)

    assert coordinator.handle_position(LOCATOR) is SyncOutcome.WRITTEN
    assert coordinator.handle_position(LOCATOR) is SyncOutcome.UNCHANGED
    assert repository.get_by_id(book.id).last_locator == LOCATOR


def test_position_without_open_book_ignored(coordinator):
    assert coordinator.handle_position(LOCATOR) is None


def test_add_highlight_to_open_book(coordinator, book):
    coordinator.open_book(book.id)

    coordinator.add_highlight("Ch1", "a")
    updated = coordinator.add_highlight("Ch1", "b")

    assert updated.highlights == {"Ch1": ["a", "b"]}


def test_add_highlight_without_open_book(coordinator):
    assert coordinator.add_highlight("Ch1", "a") is None


def test_close_without_open_book_is_safe(coordinator):
    assert coordinator.close_book() == 0


def test_fails_fast_on_missing_dependencies(repository, merge_engine, preferences):
    ensure_qt_app()
    with pytest.raises(ValueError, match="DocumentRenderer must not be None"):
        ReaderSessionCoordinator(
            renderer=None,
            repository=repository,
            merge_engine=merge_engine,
            progress_sync=ProgressSync(merge_engine),
            preferences=preferences,
        )
    with pytest.raises(ValueError, match="ProgressSync must not be None"):
        ReaderSessionCoordinator(
            renderer=MagicMock(),
            repository=repository,
            merge_engine=merge_engine,
            progress_sync=None,
            preferences=preferences,
        )
