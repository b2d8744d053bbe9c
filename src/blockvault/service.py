from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime

from blockvault.schemas import (
    FileEntry,
    FileRecord,
    NotFound,
    new_file_id,
    normalize_datetime,
    now_utc,
)
from blockvault.storage import StorageContext

logger = logging.getLogger(__name__)


class FileVault:
    """Coordinates the metadata and content stores behind five operations.

    Mutations touch the two stores one after the other with no cross-store
    transaction. A failure between the two writes leaves one half behind;
    later reads of that id report NotFound.
    """

    def __init__(
        self,
        storage: StorageContext,
        *,
        clock: Callable[[], datetime] = now_utc,
        id_factory: Callable[[], str] = new_file_id,
    ) -> None:
        self.storage = storage
        self._clock = clock
        self._id_factory = id_factory
        self._write_lock = threading.Lock()

    def upload(
        self,
        file_name: str,
        file_size: int,
        file_type: str,
        content: bytes,
    ) -> FileRecord:
        record = FileRecord(
            id=self._id_factory(),
            file_name=file_name,
            file_size=file_size,
            file_type=file_type,
            uploaded_at=self._clock(),
            updated_at=None,
        )
        with self._write_lock:
            self.storage.metadata.insert(record.id, record)
            self.storage.content.insert(record.id, content)

        logger.info(
            "file_vault upload id=%s size=%d bytes=%d",
            record.id,
            record.file_size,
            len(content),
        )
        return record

    def list_all(self) -> list[FileRecord]:
        return self.storage.metadata.values()

    def get_by_id(self, file_id: str) -> FileEntry | NotFound:
        # a pair is never observed mid-delete
        with self._write_lock:
            record = self.storage.metadata.get(file_id)
            content = self.storage.content.get(file_id)

        if record is None or content is None:
            self._log_missing("get", file_id, record is not None, content is not None)
            return NotFound(file_id)
        return FileEntry(record=record, content=content)

    def update_metadata(
        self,
        file_id: str,
        file_name: str,
        file_type: str,
    ) -> FileRecord | NotFound:
        with self._write_lock:
            current = self.storage.metadata.get(file_id)
            if current is None:
                logger.info("file_vault update miss id=%s", file_id)
                return NotFound(file_id)

            updated = current.model_copy(
                update={
                    "file_name": file_name,
                    "file_type": file_type,
                    "updated_at": self._next_updated_at(current),
                }
            )
            self.storage.metadata.insert(file_id, updated)

        logger.info("file_vault update id=%s", file_id)
        return updated

    def delete_file(self, file_id: str) -> FileRecord | NotFound:
        with self._write_lock:
            removed_record = self.storage.metadata.remove(file_id)
            removed_content = self.storage.content.remove(file_id)

        if removed_record is None or removed_content is None:
            self._log_missing(
                "delete", file_id, removed_record is not None, removed_content is not None
            )
            return NotFound(file_id)

        logger.info("file_vault delete id=%s", file_id)
        return removed_record

    def _next_updated_at(self, current: FileRecord) -> datetime:
        # updated_at never moves backwards, even if the clock does
        floor = current.updated_at or current.uploaded_at
        return max(normalize_datetime(self._clock()), floor)

    @staticmethod
    def _log_missing(
        operation: str,
        file_id: str,
        has_metadata: bool,
        has_content: bool,
    ) -> None:
        if has_metadata or has_content:
            logger.warning(
                "file_vault %s partial id=%s metadata=%s content=%s",
                operation,
                file_id,
                has_metadata,
                has_content,
            )
            return
        logger.info("file_vault %s miss id=%s", operation, file_id)
