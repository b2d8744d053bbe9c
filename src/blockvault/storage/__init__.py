"""Storage layer: SQLite metadata + file-per-blob content."""

from .content import ContentStore, FileContentStore, InMemoryContentStore
from .context import StorageContext, open_storage
from .metadata import InMemoryMetadataStore, MetadataStore, SqliteMetadataStore

__all__ = [
    "ContentStore",
    "FileContentStore",
    "InMemoryContentStore",
    "InMemoryMetadataStore",
    "MetadataStore",
    "SqliteMetadataStore",
    "StorageContext",
    "open_storage",
]
