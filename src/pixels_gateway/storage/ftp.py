"""Plain FTP backend on the standard library ``ftplib`` client."""

import ftplib
import io
import posixpath

from ..core.config import FtpStorageConfig
from ..core.exceptions import AuthError, BackendError, NotFound
from ..core.logging_config import get_logger
from .base import SessionStorageBackend

logger = get_logger("storage.ftp")

DEFAULT_FTP_PORT = 21
CONNECT_TIMEOUT_SECONDS = 30


class FileTransferPushBackend(SessionStorageBackend):
    """FTP server reached through one logged-in ``ftplib.FTP`` session."""

    kind = "ftp"

    def __init__(self, name: str, config: FtpStorageConfig):
        super().__init__(name, base_dir=config.remote_dir, cache_dir=config.convert_path)
        self.config = config

    def _open_session(self) -> ftplib.FTP:
        logger.info(f"Attempting to connect to FTP host: {self.config.host}")
        ftp = ftplib.FTP(timeout=CONNECT_TIMEOUT_SECONDS)
        ftp.connect(self.config.host, self.config.port or DEFAULT_FTP_PORT)
        try:
            ftp.login(self.config.user, self.config.password or "")
        except ftplib.Error:
            ftp.close()
            raise
        return ftp

    def _close_session(self, session: ftplib.FTP) -> None:
        try:
            session.quit()
        except (ftplib.Error, OSError, EOFError):
            session.close()

    def _is_connection_error(self, error: Exception) -> bool:
        if isinstance(error, ftplib.error_temp):
            return str(error).startswith("421")
        return isinstance(error, (EOFError, ConnectionError, TimeoutError))

    def _read_file(self, session: ftplib.FTP, path: str) -> bytes:
        buffer = io.BytesIO()
        session.retrbinary(f"RETR {path}", buffer.write)
        return buffer.getvalue()

    def _write_file(self, session: ftplib.FTP, path: str, data: bytes) -> None:
        self._make_dirs(session, posixpath.dirname(path))
        session.storbinary(f"STOR {path}", io.BytesIO(data))

    def _make_dirs(self, session: ftplib.FTP, directory: str) -> None:
        current = "/" if directory.startswith("/") else ""
        for part in directory.strip("/").split("/"):
            if not part:
                continue
            current = posixpath.join(current, part)
            try:
                session.mkd(current)
            except ftplib.error_perm as e:
                # 550 when the directory already exists
                if not str(e).startswith("550"):
                    raise

    def _probe(self, session: ftplib.FTP) -> None:
        session.voidcmd("NOOP")

    def _translate_error(self, error: Exception, operation: str, path: str) -> Exception:
        message = str(error)
        if operation == "read" and (message.startswith("550") or "No such file" in message):
            return NotFound(f"File not found: {path}")
        if message.startswith("530"):
            return AuthError(f"FTP login rejected for '{self.name}': {message}")
        return BackendError(f"FTP {operation} failed on '{self.name}': {message}")
