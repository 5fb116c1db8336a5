"""Uniform storage capability shared by every backend kind."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, TypeVar

from ..core.exceptions import BackendError, GatewayError, Unsupported
from ..core.logging_config import get_logger

logger = get_logger("storage")

T = TypeVar("T")


def join_key(prefix: Optional[str], key: str) -> str:
    """Join a configured prefix and a relative key with exactly one slash."""
    key = key.lstrip("/")
    if not prefix:
        return key
    return f"{prefix.rstrip('/')}/{key}"


class StorageBackend(ABC):
    """
    A named storage target able to read, write and list image objects.

    Originals live under the backend's base location; derived variants are
    written to its cache location, which falls back to the base when no
    separate one is configured.
    """

    kind: str = "abstract"

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def read(self, key: str, *, from_cache: bool = True) -> bytes:
        """Return the object bytes, raising ``NotFound`` when absent."""

    @abstractmethod
    async def write(self, key: str, data: bytes) -> None:
        """Store ``data`` under ``key`` in the cache location."""

    @abstractmethod
    async def list(self, prefix: str) -> List[str]:
        """Return every original key under ``prefix``, relative to the base."""

    @abstractmethod
    async def check_credentials(self) -> None:
        """Raise ``AuthError`` or ``BackendError`` when the backend is unusable."""

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class SessionStorageBackend(StorageBackend):
    """
    Backend holding one blocking client session.

    The session is used by one coroutine at a time under ``_lock``. Blocking
    calls run in a worker thread. A call that fails because the session
    dropped reconnects and retries once.
    """

    def __init__(
        self,
        name: str,
        base_dir: Optional[str] = None,
        cache_dir: Optional[str] = None,
    ):
        super().__init__(name)
        self.base_dir = base_dir
        self.cache_dir = cache_dir or base_dir
        self._session: Any = None
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._session is not None

    @abstractmethod
    def _open_session(self) -> Any:
        """Open and authenticate a new session. Runs in a worker thread."""

    @abstractmethod
    def _close_session(self, session: Any) -> None:
        """Close ``session``. Runs in a worker thread."""

    @abstractmethod
    def _is_connection_error(self, error: Exception) -> bool:
        """True when ``error`` means the session is no longer usable."""

    @abstractmethod
    def _read_file(self, session: Any, path: str) -> bytes:
        ...

    @abstractmethod
    def _write_file(self, session: Any, path: str, data: bytes) -> None:
        ...

    @abstractmethod
    def _probe(self, session: Any) -> None:
        """Issue a cheap authenticated command."""

    @abstractmethod
    def _translate_error(self, error: Exception, operation: str, path: str) -> Exception:
        """Map a client library error onto the gateway taxonomy."""

    async def read(self, key: str, *, from_cache: bool = True) -> bytes:
        path = join_key(self.cache_dir if from_cache else self.base_dir, key)
        return await self._call("read", path, self._read_file, path)

    async def write(self, key: str, data: bytes) -> None:
        path = join_key(self.cache_dir, key)
        await self._call("write", path, self._write_file, path, data)

    async def list(self, prefix: str) -> List[str]:
        raise Unsupported("List files operation not supported for this storage type.")

    async def check_credentials(self) -> None:
        await self._call("check_credentials", "", self._probe)

    async def connect(self) -> None:
        async with self._lock:
            await self._ensure_session()

    async def close(self) -> None:
        async with self._lock:
            await self._drop_session()

    async def _ensure_session(self) -> Any:
        if self._session is None:
            try:
                self._session = await asyncio.to_thread(self._open_session)
            except GatewayError:
                raise
            except Exception as e:
                raise self._translate_error(e, "connect", "") from e
            logger.info(f"Connected {self.kind} backend '{self.name}'")
        return self._session

    async def _drop_session(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        try:
            await asyncio.to_thread(self._close_session, session)
        except Exception as e:
            logger.warning(f"Closing {self.kind} session for '{self.name}' failed: {e}")

    async def _call(self, operation: str, path: str, func: Callable[..., T], *args: Any) -> T:
        """Run ``func(session, *args)`` in a thread, reconnecting once if needed."""
        async with self._lock:
            for attempt in (1, 2):
                session = await self._ensure_session()
                try:
                    return await asyncio.to_thread(func, session, *args)
                except GatewayError:
                    raise
                except Exception as e:
                    if attempt == 1 and self._is_connection_error(e):
                        logger.warning(
                            f"{self.kind} session for '{self.name}' dropped during "
                            f"{operation}, reconnecting: {e}"
                        )
                        await self._drop_session()
                        continue
                    raise self._translate_error(e, operation, path) from e
        raise BackendError(f"{operation} on '{self.name}' failed after reconnecting")
