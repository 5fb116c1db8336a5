"""Explicit name to backend map built from the storage document."""

from typing import Callable, Dict, Iterator, List, Optional

from ..core.config import StorageDocument, StorageEntry
from ..core.exceptions import ConfigurationError, NotFound
from ..core.logging_config import get_logger
from .base import StorageBackend
from .ftp import FileTransferPushBackend
from .s3 import ObjectStoreBackend
from .sftp import FileTransferSecureBackend

logger = get_logger("storage.registry")


def create_backend(name: str, entry: StorageEntry) -> StorageBackend:
    """Build the backend variant selected by ``entry.type``."""
    if entry.type == "s3":
        return ObjectStoreBackend(name, entry.s3)
    if entry.type == "ftp":
        return FileTransferPushBackend(name, entry.ftp)
    if entry.type == "sftp":
        return FileTransferSecureBackend(name, entry.ftp)
    raise ConfigurationError(f"Unsupported storage type: {entry.type}")


class StorageRegistry:
    """Registered backends by name. Built once and passed around explicitly."""

    def __init__(self, backends: Optional[Dict[str, StorageBackend]] = None):
        self._backends: Dict[str, StorageBackend] = dict(backends or {})

    @classmethod
    def from_document(
        cls,
        document: StorageDocument,
        backend_factory: Callable[[str, StorageEntry], StorageBackend] = create_backend,
    ) -> "StorageRegistry":
        backends = {name: backend_factory(name, entry) for name, entry in document.storage.items()}
        logger.info(f"Registered {len(backends)} storage backend(s): {', '.join(backends) or '-'}")
        return cls(backends)

    def get(self, name: str) -> StorageBackend:
        try:
            return self._backends[name]
        except KeyError:
            raise NotFound(f"Storage '{name}' not found.") from None

    def __contains__(self, name: object) -> bool:
        return name in self._backends

    def __iter__(self) -> Iterator[StorageBackend]:
        return iter(self._backends.values())

    def names(self) -> List[str]:
        return list(self._backends)

    async def connect_all(self) -> None:
        """Open sessions for connection oriented backends. Failures are logged."""
        for backend in self._backends.values():
            try:
                await backend.connect()
            except Exception as e:
                logger.error(f"Could not connect storage '{backend.name}': {e}")

    async def close_all(self) -> None:
        for backend in self._backends.values():
            try:
                await backend.close()
            except Exception as e:
                logger.warning(f"Error closing storage '{backend.name}': {e}")
