from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from blockvault.schemas import FileRecord


class MetadataStore(Protocol):
    def insert(self, file_id: str, record: FileRecord) -> None:
        """Insert or overwrite the record stored under file_id."""

    def get(self, file_id: str) -> FileRecord | None:
        """Return the record for file_id, or None when absent."""

    def values(self) -> list[FileRecord]:
        """Return every record ordered by identifier."""

    def remove(self, file_id: str) -> FileRecord | None:
        """Delete file_id and return the prior record, or None when absent."""


class SqliteMetadataStore:
    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def insert(self, file_id: str, record: FileRecord) -> None:
        payload = (
            file_id,
            record.file_name,
            str(record.file_size),
            record.file_type,
            record.uploaded_at.isoformat(),
            record.updated_at.isoformat() if record.updated_at is not None else None,
        )
        query = """
        INSERT INTO file_metadata (
            id, file_name, file_size, file_type, uploaded_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            file_name=excluded.file_name,
            file_size=excluded.file_size,
            file_type=excluded.file_type,
            uploaded_at=excluded.uploaded_at,
            updated_at=excluded.updated_at
        """
        with self._connect() as conn:
            conn.execute(query, payload)

    def get(self, file_id: str) -> FileRecord | None:
        query = """
        SELECT id, file_name, file_size, file_type, uploaded_at, updated_at
        FROM file_metadata
        WHERE id = ?
        """
        with self._connect() as conn:
            row = conn.execute(query, (file_id,)).fetchone()

        if row is None:
            return None
        return self._row_to_record(row)

    def values(self) -> list[FileRecord]:
        query = """
        SELECT id, file_name, file_size, file_type, uploaded_at, updated_at
        FROM file_metadata
        ORDER BY id ASC
        """
        with self._connect() as conn:
            rows = conn.execute(query).fetchall()

        return [self._row_to_record(row) for row in rows]

    def remove(self, file_id: str) -> FileRecord | None:
        select_query = """
        SELECT id, file_name, file_size, file_type, uploaded_at, updated_at
        FROM file_metadata
        WHERE id = ?
        """
        with self._connect() as conn:
            row = conn.execute(select_query, (file_id,)).fetchone()
            if row is None:
                return None
            conn.execute("DELETE FROM file_metadata WHERE id = ?", (file_id,))

        return self._row_to_record(row)

    def _init_schema(self) -> None:
        schema_path = Path(__file__).with_name("schema.sql")
        schema = schema_path.read_text(encoding="utf-8")
        with self._connect() as conn:
            conn.executescript(schema)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> FileRecord:
        return FileRecord(
            id=row["id"],
            file_name=row["file_name"],
            file_size=int(row["file_size"]),
            file_type=row["file_type"],
            uploaded_at=row["uploaded_at"],
            updated_at=row["updated_at"],
        )


class InMemoryMetadataStore:
    def __init__(self) -> None:
        self._records: dict[str, FileRecord] = {}

    def insert(self, file_id: str, record: FileRecord) -> None:
        self._records[file_id] = record

    def get(self, file_id: str) -> FileRecord | None:
        return self._records.get(file_id)

    def values(self) -> list[FileRecord]:
        return [self._records[key] for key in sorted(self._records)]

    def remove(self, file_id: str) -> FileRecord | None:
        return self._records.pop(file_id, None)
