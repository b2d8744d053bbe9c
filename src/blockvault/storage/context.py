from __future__ import annotations

from dataclasses import dataclass

from blockvault.config import StorageConfig

from .content import ContentStore, FileContentStore, InMemoryContentStore
from .metadata import InMemoryMetadataStore, MetadataStore, SqliteMetadataStore


@dataclass(slots=True, frozen=True)
class StorageContext:
    """The metadata and content stores sharing one identifier space."""

    metadata: MetadataStore
    content: ContentStore

    @classmethod
    def in_memory(cls) -> StorageContext:
        return cls(metadata=InMemoryMetadataStore(), content=InMemoryContentStore())


def open_storage(config: StorageConfig) -> StorageContext:
    if config.backend == "memory":
        return StorageContext.in_memory()
    return StorageContext(
        metadata=SqliteMetadataStore(config.db_path),
        content=FileContentStore(config.content_dir),
    )
