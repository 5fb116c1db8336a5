"""SFTP backend on paramiko."""

import io
import posixpath
import stat
from dataclasses import dataclass
from typing import Optional

import paramiko

from ..core.config import FtpStorageConfig
from ..core.exceptions import AuthError, BackendError, ConfigurationError, NotFound
from ..core.logging_config import get_logger
from .base import SessionStorageBackend

logger = get_logger("storage.sftp")

DEFAULT_SFTP_PORT = 22
CONNECT_TIMEOUT_SECONDS = 30
_KEY_TYPES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


@dataclass
class SftpSession:
    client: paramiko.SSHClient
    sftp: paramiko.SFTPClient


def load_private_key(key_text: str, passphrase: Optional[str] = None) -> paramiko.PKey:
    """Parse PEM/OpenSSH key material of any supported type."""
    for key_type in _KEY_TYPES:
        try:
            return key_type.from_private_key(io.StringIO(key_text), password=passphrase)
        except paramiko.SSHException:
            continue
    raise ConfigurationError("Unsupported or unreadable SFTP private key")


class FileTransferSecureBackend(SessionStorageBackend):
    """SSH file transfer server reached through one ``SFTPClient``."""

    kind = "sftp"

    def __init__(self, name: str, config: FtpStorageConfig):
        super().__init__(name, base_dir=config.remote_dir, cache_dir=config.convert_path)
        self.config = config

    def _open_session(self) -> SftpSession:
        logger.info(f"Attempting to connect to SFTP host: {self.config.host}")
        client = paramiko.SSHClient()
        if self.config.known_hosts:
            client.load_host_keys(self.config.known_hosts)
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            client.load_system_host_keys()
            client.set_missing_host_key_policy(paramiko.WarningPolicy())

        pkey = None
        if self.config.private_key:
            pkey = load_private_key(self.config.private_key, self.config.passphrase)

        client.connect(
            hostname=self.config.host,
            port=self.config.port or DEFAULT_SFTP_PORT,
            username=self.config.user,
            password=self.config.password,
            pkey=pkey,
            timeout=CONNECT_TIMEOUT_SECONDS,
            allow_agent=False,
            look_for_keys=False,
        )
        try:
            sftp = client.open_sftp()
        except paramiko.SSHException:
            client.close()
            raise
        return SftpSession(client=client, sftp=sftp)

    def _close_session(self, session: SftpSession) -> None:
        session.sftp.close()
        session.client.close()

    def _is_connection_error(self, error: Exception) -> bool:
        if isinstance(error, paramiko.AuthenticationException):
            return False
        return isinstance(error, (paramiko.SSHException, EOFError, ConnectionError))

    def _read_file(self, session: SftpSession, path: str) -> bytes:
        with session.sftp.open(path, "rb") as remote:
            return remote.read()

    def _write_file(self, session: SftpSession, path: str, data: bytes) -> None:
        self._make_dirs(session.sftp, posixpath.dirname(path))
        session.sftp.putfo(io.BytesIO(data), path)

    def _make_dirs(self, sftp: paramiko.SFTPClient, directory: str) -> None:
        current = "/" if directory.startswith("/") else ""
        for part in directory.strip("/").split("/"):
            if not part:
                continue
            current = posixpath.join(current, part)
            try:
                if not stat.S_ISDIR(sftp.stat(current).st_mode):
                    raise NotADirectoryError(current)
            except FileNotFoundError:
                sftp.mkdir(current)

    def _probe(self, session: SftpSession) -> None:
        session.sftp.normalize(".")

    def _translate_error(self, error: Exception, operation: str, path: str) -> Exception:
        if isinstance(error, paramiko.AuthenticationException):
            return AuthError(f"SFTP login rejected for '{self.name}': {error}")
        if operation == "read" and (
            isinstance(error, FileNotFoundError) or "No such file" in str(error)
        ):
            return NotFound(f"File not found: {path}")
        return BackendError(f"SFTP {operation} failed on '{self.name}': {error}")
