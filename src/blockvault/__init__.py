"""BlockVault: file metadata and content kept in two linked stores."""

from .config import VaultConfig, load_config
from .schemas import FileEntry, FileRecord, NotFound
from .service import FileVault
from .storage import StorageContext, open_storage

__all__ = [
    "FileEntry",
    "FileRecord",
    "FileVault",
    "NotFound",
    "StorageContext",
    "VaultConfig",
    "load_config",
    "open_storage",
]
