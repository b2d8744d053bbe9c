from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class ContentStore(Protocol):
    def insert(self, file_id: str, content: bytes) -> None:
        """Insert or overwrite the bytes stored under file_id."""

    def get(self, file_id: str) -> bytes | None:
        """Return the bytes for file_id, or None when absent."""

    def remove(self, file_id: str) -> bytes | None:
        """Delete file_id and return the prior bytes, or None when absent."""


class FileContentStore:
    """Stores each blob as one file named by the SHA-1 of its identifier."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def insert(self, file_id: str, content: bytes) -> None:
        data_path = self._data_path(file_id)
        tmp_path = data_path.with_suffix(".tmp")
        tmp_path.write_bytes(content)
        os.replace(tmp_path, data_path)
        logger.debug("content_store set key=%s bytes=%d", self._sha1_key(file_id), len(content))

    def get(self, file_id: str) -> bytes | None:
        data_path = self._data_path(file_id)
        try:
            return data_path.read_bytes()
        except FileNotFoundError:
            return None

    def remove(self, file_id: str) -> bytes | None:
        data_path = self._data_path(file_id)
        try:
            content = data_path.read_bytes()
            data_path.unlink()
        except FileNotFoundError:
            return None
        logger.debug("content_store delete key=%s", self._sha1_key(file_id))
        return content

    @staticmethod
    def _sha1_key(key: str) -> str:
        return hashlib.sha1(key.encode("utf-8")).hexdigest()

    def _data_path(self, key: str) -> Path:
        return self.directory / f"{self._sha1_key(key)}.blob"


class InMemoryContentStore:
    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}

    def insert(self, file_id: str, content: bytes) -> None:
        self._blobs[file_id] = bytes(content)

    def get(self, file_id: str) -> bytes | None:
        return self._blobs.get(file_id)

    def remove(self, file_id: str) -> bytes | None:
        return self._blobs.pop(file_id, None)
