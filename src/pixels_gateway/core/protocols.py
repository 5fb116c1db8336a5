"""Protocol definitions for dependency injection and testability."""

from typing import Any, List, Optional, Protocol

from .models import BatchProgress
from .observability import LogContext


class ProgressStoreProtocol(Protocol):
    """Key-value capability holding batch progress snapshots."""

    async def save_progress(self, token: str, snapshot: BatchProgress) -> None:
        """Persist the full snapshot under ``token``."""
        ...

    async def get_progress(self, token: str) -> BatchProgress:
        """Return the snapshot for ``token`` or raise ``NotFound``."""
        ...

    async def ping(self) -> bool:
        """True when the store answers."""
        ...


class TransformEngineProtocol(Protocol):
    """Image processing capability."""

    def apply(self, image_bytes: bytes, operations: List[Any]) -> bytes:
        """Apply ordered operations to image bytes."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for context-aware logging operations."""

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        ...

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        ...

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        ...

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        ...
