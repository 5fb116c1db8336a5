"""Storage backends behind one read/write/list capability."""

from .base import SessionStorageBackend, StorageBackend, join_key
from .ftp import FileTransferPushBackend
from .registry import StorageRegistry, create_backend
from .s3 import ObjectStoreBackend
from .sftp import FileTransferSecureBackend

__all__ = [
    "StorageBackend",
    "SessionStorageBackend",
    "ObjectStoreBackend",
    "FileTransferPushBackend",
    "FileTransferSecureBackend",
    "StorageRegistry",
    "create_backend",
    "join_key",
]
