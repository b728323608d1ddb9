"""Tests for EntryService, the composite reading-queue operations."""
import logging
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from tsundoku.exceptions import (
    ErrorCode,
    LinkNotFoundError,
    ReferentialError,
    StorageError,
    TagNotFoundError,
)
from tsundoku.models.schema import ArchiveState, Entry, TagFound
from tsundoku.services.entry_service import EntryService


class TestAddEntry:
    """Tests for EntryService.add_entry()."""

    def test_example_scenario(self, entry_service):
        """A first entry gets id 1 and its tags in input order."""
        link_id = entry_service.add_entry(
            Entry(link="http://example.com", comment="nice", tags=["news", "tech"])
        )

        assert link_id == 1
        assert entry_service.tags_for_link(1) == ["news", "tech"]
        assert entry_service.list_tags() == ["news", "tech"]

    def test_entry_without_tags(self, entry_service):
        """An entry without tags adds only the link."""
        link_id = entry_service.add_entry(Entry(link="http://example.com"))

        record = entry_service.get_entry(link_id)
        assert record.comment == ""
        assert record.tags == []
        assert entry_service.list_tags() == []

    def test_existing_tag_reused(self, entry_service):
        """A tag already stored is linked, not created again."""
        first = entry_service.add_entry(Entry(link="http://a.example", tags=["x"]))
        second = entry_service.add_entry(Entry(link="http://b.example", tags=["x", "y"]))

        assert entry_service.tags_for_link(second) == ["x", "y"]
        assert entry_service.tags_for_link(first) == ["x"]
        assert entry_service.list_tags() == ["x", "y"]

    def test_repeated_tag_in_entry(self, entry_service):
        """A tag listed twice in one entry is attached once."""
        link_id = entry_service.add_entry(
            Entry(link="http://example.com", tags=["x", "y", "x"])
        )

        assert entry_service.tags_for_link(link_id) == ["x", "y"]

    def test_created_tag_id_resolvable(self, entry_service):
        """Tags created by add_entry can be looked up."""
        entry_service.add_entry(Entry(link="http://example.com", tags=["news"]))

        assert isinstance(entry_service.find_tag("news"), TagFound)
        assert entry_service.tag_exists("news")
        assert not entry_service.tag_exists("tech")

    def test_failed_association_rolls_back_everything(self, entry_service):
        """If linking a tag fails midway, no link or tag from the call remains."""
        entry_service.add_entry(Entry(link="http://before.example", tags=["old"]))
        original_link_tag = entry_service.link_tags.link_tag
        calls = []

        def failing_link_tag(link_id, tag_id, session=None):
            calls.append(tag_id)
            if len(calls) == 2:
                raise ReferentialError("Simulated fault", link_id=link_id, tag_id=tag_id)
            return original_link_tag(link_id, tag_id, session=session)

        with patch.object(entry_service.link_tags, "link_tag", side_effect=failing_link_tag):
            with pytest.raises(ReferentialError):
                entry_service.add_entry(
                    Entry(link="http://fails.example", tags=["new", "old", "other"])
                )

        assert [r.link for r in entry_service.list_entries()] == ["http://before.example"]
        assert entry_service.list_tags() == ["old"]
        assert entry_service.tag_counts() == {"old": 1}

    def test_storage_fault_rolls_back(self, entry_service):
        """A database error while linking surfaces as StorageError and rolls back."""
        fault = OperationalError("INSERT INTO linktags", {}, Exception("disk I/O error"))

        with patch.object(
            entry_service.link_tags, "link_tag",
            side_effect=StorageError("write failed", original_error=fault),
        ):
            with pytest.raises(StorageError):
                entry_service.add_entry(Entry(link="http://example.com", tags=["news"]))

        assert entry_service.list_entries(archive=None) == []
        assert entry_service.list_tags() == []

    def test_commit_fault_raises_storage_error(self, entry_service):
        """A database error at commit time surfaces as StorageError."""
        fault = OperationalError("COMMIT", {}, Exception("database is locked"))

        with patch.object(entry_service.engine.dialect, "do_commit", side_effect=fault):
            with pytest.raises(StorageError) as exc_info:
                entry_service.add_entry(Entry(link="http://example.com", tags=["news"]))

        assert exc_info.value.code == ErrorCode.STORAGE_WRITE_FAILED
        assert exc_info.value.original_error is fault
        assert entry_service.list_entries(archive=None) == []
        assert entry_service.list_tags() == []

    def test_ids_continue_after_rollback(self, entry_service):
        """A rolled back entry does not leave a gap in later identifiers."""
        with patch.object(
            entry_service.link_tags, "link_tag",
            side_effect=ReferentialError("Simulated fault"),
        ):
            with pytest.raises(ReferentialError):
                entry_service.add_entry(Entry(link="http://fails.example", tags=["x"]))

        assert entry_service.add_entry(Entry(link="http://ok.example")) == 1


class TestMarkRead:
    """Tests for EntryService.mark_read()."""

    def test_mark_read(self, entry_service):
        """A queued entry moves to the archive."""
        link_id = entry_service.add_entry(Entry(link="http://example.com"))

        entry_service.mark_read(link_id)

        assert entry_service.get_entry(link_id).archive == ArchiveState.ARCHIVED

    def test_mark_read_again(self, entry_service):
        """Reading twice is not an error and the entry stays archived."""
        link_id = entry_service.add_entry(Entry(link="http://example.com"))

        entry_service.mark_read(link_id)
        entry_service.mark_read(link_id)

        assert entry_service.get_entry(link_id).is_read

    def test_mark_read_missing(self, entry_service):
        """Reading an unknown identifier raises LinkNotFoundError."""
        with pytest.raises(LinkNotFoundError):
            entry_service.mark_read(1)

    def test_mark_read_logs_link_id(self, entry_service, caplog):
        """The traced start line carries the link id passed by position."""
        link_id = entry_service.add_entry(Entry(link="http://example.com"))

        with caplog.at_level(logging.DEBUG, logger="tsundoku.observability"):
            entry_service.mark_read(link_id)

        assert any(
            "START mark_read" in r.getMessage() and f"link_id={link_id}" in r.getMessage()
            for r in caplog.records
        )


class TestQueries:
    """Tests for the entry listing operations."""

    @pytest.fixture
    def populated(self, entry_service):
        ids = [
            entry_service.add_entry(Entry(link="http://a.example", tags=["news"])),
            entry_service.add_entry(Entry(link="http://b.example", tags=["tech", "news"])),
            entry_service.add_entry(Entry(link="http://c.example", comment="later")),
        ]
        entry_service.mark_read(ids[1])
        return ids

    def test_get_entry_missing(self, entry_service):
        """get_entry raises LinkNotFoundError for an unknown identifier."""
        with pytest.raises(LinkNotFoundError):
            entry_service.get_entry(5)

    def test_get_entry_includes_tags(self, entry_service, populated):
        """get_entry returns the link together with its tags."""
        record = entry_service.get_entry(populated[1])

        assert record.link == "http://b.example"
        assert record.tags == ["tech", "news"]
        assert record.is_read

    def test_list_queue(self, entry_service, populated):
        """Listing the queue leaves out read entries."""
        records = entry_service.list_entries(ArchiveState.QUEUE)

        assert [r.id for r in records] == [populated[0], populated[2]]
        assert records[0].tags == ["news"]

    def test_list_all(self, entry_service, populated):
        """Listing without a state returns every entry."""
        assert [r.id for r in entry_service.list_entries()] == populated

    def test_entries_for_tag(self, entry_service, populated):
        """Entries can be queried by tag and by state."""
        records = entry_service.entries_for_tag("news")
        assert [r.id for r in records] == [populated[0], populated[1]]

        queued = entry_service.entries_for_tag("news", archive=ArchiveState.QUEUE)
        assert [r.id for r in queued] == [populated[0]]

    def test_entries_for_unknown_tag(self, entry_service, populated):
        """Querying an unknown tag raises TagNotFoundError."""
        with pytest.raises(TagNotFoundError) as exc_info:
            entry_service.entries_for_tag("sports")

        assert exc_info.value.tag == "sports"

    def test_tag_counts(self, entry_service, populated):
        """Tag counts follow tag creation order."""
        assert entry_service.tag_counts() == {"news": 2, "tech": 1}


class TestLifecycle:
    """Tests for opening and closing the service."""

    def test_open_in_memory(self):
        """An in-memory service keeps data across sessions until closed."""
        with EntryService.open_in_memory() as service:
            link_id = service.add_entry(Entry(link="http://example.com", tags=["t"]))
            assert service.tags_for_link(link_id) == ["t"]

    def test_open_file_persists(self, tmp_path):
        """Entries written to a file survive reopening it."""
        path = tmp_path / "nested" / "links.db"
        with EntryService.open(path) as service:
            service.add_entry(Entry(link="http://example.com", tags=["keep"]))

        with EntryService.open(path) as service:
            assert service.list_tags() == ["keep"]
            assert [r.link for r in service.list_entries()] == ["http://example.com"]

    def test_default_engine_uses_config(self, test_config):
        """Without an engine, the configured database path is used."""
        with EntryService() as service:
            service.add_entry(Entry(link="http://example.com"))

        assert test_config.get_absolute_path(test_config.database_path).exists()

    def test_open_failure_raises_storage_error(self, tmp_path):
        """A database path that cannot be opened raises StorageError."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(StorageError):
            EntryService.open(blocker / "sub" / "links.db")
