from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from blockvault import FileEntry, FileVault, NotFound, StorageContext
from blockvault.storage import FileContentStore, SqliteMetadataStore


class SteppingClock:
    def __init__(self, *moments: datetime) -> None:
        self.moments = list(moments)
        self.calls = 0

    def __call__(self) -> datetime:
        moment = self.moments[min(self.calls, len(self.moments) - 1)]
        self.calls += 1
        return moment


class FailingContentStore:
    def insert(self, file_id: str, content: bytes) -> None:
        raise OSError("disk full")

    def get(self, file_id: str) -> bytes | None:
        return None

    def remove(self, file_id: str) -> bytes | None:
        return None


@pytest.fixture
def vault() -> FileVault:
    return FileVault(StorageContext.in_memory())


def test_upload_then_get_returns_record_and_content(vault) -> None:
    record = vault.upload("a.txt", 3, "text/plain", b"ABC")

    assert record.file_size == 3
    assert record.updated_at is None
    assert record.uploaded_at.tzinfo is not None

    result = vault.get_by_id(record.id)
    assert isinstance(result, FileEntry)
    fetched_record, content = result
    assert fetched_record == record
    assert content == b"ABC"


def test_upload_accepts_empty_content_and_zero_size(vault) -> None:
    record = vault.upload("empty.bin", 0, "application/octet-stream", b"")

    assert vault.get_by_id(record.id) == FileEntry(record=record, content=b"")


def test_upload_keeps_declared_size_without_checking_content(vault) -> None:
    record = vault.upload("short.bin", 1024, "application/octet-stream", b"x")

    entry = vault.get_by_id(record.id)
    assert entry.record.file_size == 1024
    assert len(entry.content) == 1


def test_upload_rejects_out_of_range_size_before_touching_stores(vault) -> None:
    with pytest.raises(ValidationError):
        vault.upload("neg.bin", -1, "application/octet-stream", b"")

    assert vault.list_all() == []


def test_upload_assigns_distinct_ids(vault) -> None:
    ids = {vault.upload(f"{index}.txt", 1, "text/plain", b"x").id for index in range(50)}
    assert len(ids) == 50


def test_list_all_returns_every_upload_in_id_order() -> None:
    ids = iter(["id-c", "id-a", "id-b"])
    vault = FileVault(StorageContext.in_memory(), id_factory=lambda: next(ids))
    uploaded = [vault.upload(f"{index}.txt", index, "text/plain", b"x") for index in range(3)]

    listed = vault.list_all()
    assert [record.id for record in listed] == ["id-a", "id-b", "id-c"]
    assert sorted(listed, key=lambda record: record.id) == sorted(
        uploaded, key=lambda record: record.id
    )


def test_list_all_on_empty_store(vault) -> None:
    assert vault.list_all() == []


def test_get_unknown_id_returns_not_found(vault) -> None:
    result = vault.get_by_id("never-uploaded")

    assert isinstance(result, NotFound)
    assert result.message == "File with id=never-uploaded not found"
    assert str(result) == result.message


def test_update_metadata_replaces_name_and_type_only() -> None:
    uploaded_at = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)
    clock = SteppingClock(uploaded_at, uploaded_at + timedelta(seconds=5))
    vault = FileVault(StorageContext.in_memory(), clock=clock)
    record = vault.upload("a.txt", 3, "text/plain", b"ABC")

    updated = vault.update_metadata(record.id, "b.md", "text/markdown")

    assert updated.file_name == "b.md"
    assert updated.file_type == "text/markdown"
    assert updated.id == record.id
    assert updated.file_size == record.file_size
    assert updated.uploaded_at == record.uploaded_at
    assert updated.updated_at == uploaded_at + timedelta(seconds=5)
    assert vault.get_by_id(record.id) == FileEntry(record=updated, content=b"ABC")


def test_update_metadata_never_moves_updated_at_backwards() -> None:
    start = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)
    clock = SteppingClock(
        start,
        start + timedelta(minutes=10),
        start + timedelta(minutes=1),
        start - timedelta(days=1),
    )
    vault = FileVault(StorageContext.in_memory(), clock=clock)
    record = vault.upload("a.txt", 3, "text/plain", b"ABC")

    first = vault.update_metadata(record.id, "b.txt", "text/plain")
    second = vault.update_metadata(record.id, "c.txt", "text/plain")
    third = vault.update_metadata(record.id, "d.txt", "text/plain")

    assert first.updated_at == start + timedelta(minutes=10)
    assert second.updated_at >= first.updated_at
    assert third.updated_at >= second.updated_at
    assert third.updated_at >= record.uploaded_at


def test_update_metadata_unknown_id_changes_nothing(vault) -> None:
    record = vault.upload("a.txt", 3, "text/plain", b"ABC")

    result = vault.update_metadata("missing", "b.txt", "text/plain")

    assert result == NotFound("missing")
    assert vault.list_all() == [record]
    assert vault.storage.content.get("missing") is None
    assert vault.storage.metadata.get("missing") is None


def test_delete_removes_both_halves(vault) -> None:
    record = vault.upload("a.txt", 3, "text/plain", b"ABC")

    assert vault.delete_file(record.id) == record
    assert vault.storage.metadata.get(record.id) is None
    assert vault.storage.content.get(record.id) is None
    assert isinstance(vault.get_by_id(record.id), NotFound)
    assert isinstance(vault.update_metadata(record.id, "b.txt", "text/plain"), NotFound)


def test_second_delete_returns_not_found(vault) -> None:
    record = vault.upload("a.txt", 3, "text/plain", b"ABC")

    vault.delete_file(record.id)
    assert vault.delete_file(record.id) == NotFound(record.id)
    assert vault.delete_file("never-uploaded") == NotFound("never-uploaded")


def test_delete_returns_last_updated_record(vault) -> None:
    record = vault.upload("a.txt", 3, "text/plain", b"ABC")
    updated = vault.update_metadata(record.id, "b.txt", "text/plain")

    assert vault.delete_file(record.id) == updated


def test_get_reports_not_found_when_content_half_is_missing(vault, caplog) -> None:
    record = vault.upload("a.txt", 3, "text/plain", b"ABC")
    vault.storage.content.remove(record.id)

    with caplog.at_level(logging.WARNING, logger="blockvault.service"):
        result = vault.get_by_id(record.id)

    assert result == NotFound(record.id)
    assert "partial" in caplog.text


def test_delete_with_missing_content_half_still_drops_metadata(vault) -> None:
    record = vault.upload("a.txt", 3, "text/plain", b"ABC")
    vault.storage.content.remove(record.id)

    assert vault.delete_file(record.id) == NotFound(record.id)
    assert vault.storage.metadata.get(record.id) is None


def test_failed_content_write_leaves_metadata_without_rollback() -> None:
    storage = StorageContext.in_memory()
    vault = FileVault(
        StorageContext(metadata=storage.metadata, content=FailingContentStore()),
        id_factory=lambda: "orphan",
    )

    with pytest.raises(OSError):
        vault.upload("a.txt", 3, "text/plain", b"ABC")

    assert storage.metadata.get("orphan") is not None
    assert vault.get_by_id("orphan") == NotFound("orphan")


def test_full_lifecycle_on_persistent_stores(tmp_path) -> None:
    def open_vault() -> FileVault:
        return FileVault(
            StorageContext(
                metadata=SqliteMetadataStore(tmp_path / "blockvault.db"),
                content=FileContentStore(tmp_path / "content"),
            )
        )

    record = open_vault().upload("a.txt", 3, "text/plain", bytes([0x41, 0x42, 0x43]))

    vault = open_vault()
    assert vault.get_by_id(record.id) == FileEntry(record=record, content=b"ABC")

    updated = vault.update_metadata(record.id, "b.txt", "text/plain")
    assert updated.file_name == "b.txt"
    assert updated.updated_at is not None

    assert vault.delete_file(record.id) == updated
    assert vault.get_by_id(record.id) == NotFound(record.id)
    assert open_vault().list_all() == []


def test_update_metadata_accepts_naive_clock_as_utc() -> None:
    clock = SteppingClock(datetime(2026, 3, 1, 9, 0), datetime(2026, 3, 1, 9, 5))
    vault = FileVault(StorageContext.in_memory(), clock=clock)
    record = vault.upload("a.txt", 3, "text/plain", b"ABC")

    updated = vault.update_metadata(record.id, "b.txt", "text/plain")

    assert record.uploaded_at == datetime(2026, 3, 1, 9, 0, tzinfo=UTC)
    assert updated.updated_at == datetime(2026, 3, 1, 9, 5, tzinfo=UTC)
    assert updated.updated_at.tzinfo is UTC


def test_get_by_id_waits_for_in_flight_write(vault) -> None:
    record = vault.upload("a.txt", 3, "text/plain", b"ABC")
    results: list[object] = []

    vault._write_lock.acquire()
    reader = threading.Thread(target=lambda: results.append(vault.get_by_id(record.id)))
    reader.start()
    reader.join(timeout=0.2)
    assert reader.is_alive()

    vault.storage.metadata.remove(record.id)
    vault.storage.content.remove(record.id)
    vault._write_lock.release()
    reader.join(timeout=5)

    assert results == [NotFound(record.id)]
