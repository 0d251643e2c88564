#!/usr/bin/env python3
"""
Tests for BookRepository - validates book record persistence.
"""

import sqlite3
from pathlib import Path

import pytest

from epub_library.core import BookRecord, NotFound, StorageIoError
from epub_library.io import BookRepository, SchemaMigrationManager
from epub_library.io.book_repository import decode_highlights
from epub_library.core.errors import DecodeError


@pytest.fixture
def db_connection():
    """Create an in-memory database with the current schema."""
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    SchemaMigrationManager(conn).migrate()
    yield conn
    conn.close()


@pytest.fixture
def library_repo(db_connection):
    """Create a BookRepository with an in-memory database."""
    return BookRepository(db_connection)


def test_import_book(library_repo):
    """Test importing a book assigns an id and an empty reading state."""
    file_path = Path("/test/epubs/republic.epub")

    book = library_repo.import_book(file_path, cover_image_path="assets/republic.png")

    assert book.id is not None
    assert book.title == "republic"
    assert book.file_path == file_path.resolve()
    assert book.total_reading_time == 0
    assert book.highlights == {}
    assert book.last_locator == {}
    assert book.cover_image_path == "assets/republic.png"


def test_import_duplicate_path_is_noop(library_repo):
    """Importing a path already in the library leaves the record unchanged."""
    first = library_repo.import_book(Path("/test/epubs/a.epub"), title="Original")

    second = library_repo.import_book(Path("/test/epubs/a.epub"), title="Other")

    assert second is None
    books = library_repo.list_all()
    assert len(books) == 1
    assert books[0].id == first.id
    assert books[0].title == "Original"


def test_import_canonicalizes_paths(library_repo):
    library_repo.import_book(Path("/test/epubs/a.epub"))

    assert library_repo.import_book(Path("/test/epubs/../epubs/a.epub")) is None
    assert library_repo.exists_by_path(Path("/test/./epubs/a.epub"))


def test_insert_or_replace_assigns_id(library_repo):
    record = BookRecord(id=None, title="Meditations", file_path=Path("/x/m.epub"))

    book_id = library_repo.insert_or_replace(record)

    stored = library_repo.get_by_id(book_id)
    assert stored.title == "Meditations"


def test_insert_or_replace_fully_replaces(library_repo):
    book = library_repo.import_book(Path("/x/m.epub"))
    library_repo.update(
        BookRecord(
            id=book.id,
            title="Meditations",
            file_path=book.file_path,
            total_reading_time=50,
            highlights={"Ch1": ["a"]},
        )
    )

    replacement = BookRecord(id=book.id, title="Replaced", file_path=book.file_path)
    assert library_repo.insert_or_replace(replacement) == book.id

    stored = library_repo.get_by_id(book.id)
    assert stored.title == "Replaced"
    assert stored.total_reading_time == 0
    assert stored.highlights == {}


def test_insert_or_replace_rejects_path_of_other_book(library_repo):
    library_repo.import_book(Path("/x/a.epub"))
    other = library_repo.import_book(Path("/x/b.epub"))

    clash = BookRecord(id=other.id, title="b", file_path=Path("/x/a.epub").resolve())
    with pytest.raises(StorageIoError):
        library_repo.insert_or_replace(clash)
    assert len(library_repo.list_all()) == 2


def test_list_all_empty(library_repo):
    assert library_repo.list_all() == []


def test_list_all_ordered_by_title(library_repo):
    library_repo.import_book(Path("/x/c.epub"), title="The Republic")
    library_repo.import_book(Path("/x/a.epub"), title="Designing Your Life")
    library_repo.import_book(Path("/x/b.epub"), title="Discourses")

    titles = [book.title for book in library_repo.list_all()]

    assert titles == ["Designing Your Life", "Discourses", "The Republic"]


def test_find_by_path(library_repo):
    added = library_repo.import_book(Path("/x/a.epub"))

    assert library_repo.find_by_path(Path("/x/a.epub")).id == added.id
    assert library_repo.find_by_path(Path("/x/missing.epub")) is None


def test_exists_by_open_library_key(library_repo):
    library_repo.import_book(Path("/x/a.epub"), open_library_key="/works/OL1W")

    assert library_repo.exists_by_open_library_key("/works/OL1W")
    assert not library_repo.exists_by_open_library_key("/works/OL2W")


def test_get_by_id_not_found(library_repo):
    with pytest.raises(NotFound) as excinfo:
        library_repo.get_by_id(999)
    assert excinfo.value.book_id == 999


def test_update_overwrites_fields(library_repo):
    book = library_repo.import_book(Path("/x/a.epub"))
    book.title = "New Title"
    book.cover_image_path = "assets/new.png"
    book.last_locator = {"href": "c2", "locations": {"cfi": "/4"}}

    updated = library_repo.update(book)

    assert updated.title == "New Title"
    assert updated.cover_image_path == "assets/new.png"
    assert updated.last_locator == {"href": "c2", "locations": {"cfi": "/4"}}


def test_update_unknown_id_raises_not_found(library_repo):
    with pytest.raises(NotFound):
        library_repo.update(BookRecord(id=42, title="Ghost", file_path=Path("/x/g.epub")))


def test_update_unsaved_record_raises_not_found(library_repo):
    with pytest.raises(NotFound):
        library_repo.update(BookRecord(id=None, title="New", file_path=Path("/x/n.epub")))


def test_delete_by_id_reports_rows(library_repo):
    book = library_repo.import_book(Path("/x/a.epub"))

    assert library_repo.delete_by_id(book.id) == 1
    assert library_repo.delete_by_id(book.id) == 0
    assert library_repo.list_all() == []


def test_corrupt_highlights_read_as_empty(library_repo, db_connection):
    book = library_repo.import_book(Path("/x/a.epub"))
    db_connection.execute(
        "UPDATE books SET highlights = ?, total_reading_time = 30 WHERE id = ?",
        ("{not json", book.id),
    )
    db_connection.commit()

    stored = library_repo.get_by_id(book.id)

    assert stored.highlights == {}
    assert stored.total_reading_time == 30


def test_corrupt_locator_read_as_start_of_document(library_repo, db_connection):
    book = library_repo.import_book(Path("/x/a.epub"))
    db_connection.execute("UPDATE books SET last_locator = '[1' WHERE id = ?", (book.id,))
    db_connection.commit()

    assert library_repo.get_by_id(book.id).last_locator == {}


def test_storage_failure_is_reported(library_repo, db_connection):
    db_connection.execute("DROP TABLE books")

    with pytest.raises(StorageIoError):
        library_repo.list_all()


def test_repository_works_on_older_schema():
    conn = sqlite3.connect(":memory:")
    SchemaMigrationManager(conn).migrate(2)
    repo = BookRepository(conn)

    book = repo.import_book(Path("/x/a.epub"), cover_image_path="a.png")

    assert book.cover_image_path == "a.png"
    assert book.open_library_key is None
    assert not repo.exists_by_open_library_key("/works/OL1W")
    conn.close()


def test_older_schema_rejects_fields_it_cannot_store():
    conn = sqlite3.connect(":memory:")
    SchemaMigrationManager(conn).migrate(1)
    repo = BookRepository(conn)
    book = repo.import_book(Path("/x/a.epub"))

    book.cover_image_path = "a.png"
    with pytest.raises(StorageIoError, match="cover_image_path"):
        repo.update(book)
    with pytest.raises(StorageIoError, match="open_library_key"):
        repo.import_book(Path("/x/b.epub"), open_library_key="/works/OL1W")

    assert repo.get_by_id(book.id).cover_image_path is None
    assert [b.title for b in repo.list_all()] == ["a"]
    conn.close()


def test_repository_requires_connection():
    with pytest.raises(ValueError, match="Database connection required"):
        BookRepository(None)


class TestDecodeHighlights:
    def test_valid_map(self):
        assert decode_highlights('{"Ch1": ["a", "b"], "Ch2": []}') == {"Ch1": ["a", "b"]}

    def test_empty_values(self):
        assert decode_highlights(None) == {}
        assert decode_highlights("") == {}

    @pytest.mark.parametrize("raw", ["{", "[]", '{"Ch1": "a"}'])
    def test_malformed(self, raw):
        with pytest.raises(DecodeError):
            decode_highlights(raw)
