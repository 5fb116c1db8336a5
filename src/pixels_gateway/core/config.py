"""Application configuration: environment settings and the storage document."""

import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

S3Acl = Literal[
    "private",
    "public-read",
    "public-read-write",
    "aws-exec-read",
    "authenticated-read",
    "bucket-owner-read",
    "bucket-owner-full-control",
    "log-delivery-write",
]


class Settings(BaseSettings):
    """Gateway settings loaded from environment variables and ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "pixels-gateway"
    host: str = "0.0.0.0"
    port: int = 4141
    log_level: str = "INFO"

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    progress_ttl_seconds: Optional[int] = None

    # Storage
    storage_config_path: str = "config.json"

    # Limits
    request_timeout_seconds: float = 30.0
    batch_concurrency: int = Field(default=4, ge=1)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )


class S3StorageConfig(_CamelModel):
    bucket: str
    endpoint: Optional[str] = None
    access_key: str
    secret_key: str
    prefix: str = ""
    region: str = "us-east-1"
    convert_path: Optional[str] = None
    acl: S3Acl = "private"


class FtpStorageConfig(_CamelModel):
    host: str
    port: Optional[int] = None
    user: str
    password: Optional[str] = None
    private_key: Optional[str] = None
    passphrase: Optional[str] = None
    remote_dir: Optional[str] = None
    convert_path: Optional[str] = None
    known_hosts: Optional[str] = None


class StorageEntry(_CamelModel):
    """One named backend in the storage document."""

    type: Literal["s3", "ftp", "sftp"]
    s3: Optional[S3StorageConfig] = None
    ftp: Optional[FtpStorageConfig] = None

    @model_validator(mode="after")
    def _require_matching_section(self) -> "StorageEntry":
        if self.type == "s3" and self.s3 is None:
            raise ValueError("S3 configuration is required when type is 's3'")
        if self.type in ("ftp", "sftp") and self.ftp is None:
            raise ValueError(
                f"FTP configuration is required when type is '{self.type}'"
            )
        return self


class StorageDocument(_CamelModel):
    storage: Dict[str, StorageEntry] = Field(default_factory=dict)


def _format_validation_error(error: ValidationError) -> str:
    lines = []
    for issue in error.errors():
        location = ".".join(str(part) for part in issue["loc"]) or "<root>"
        lines.append(f"{location}: {issue['msg']}")
    return "; ".join(lines)


def parse_storage_config(data: Union[dict, str, bytes]) -> StorageDocument:
    """Validate a storage document given as a mapping or JSON text."""
    try:
        if isinstance(data, (str, bytes)):
            return StorageDocument.model_validate_json(data)
        return StorageDocument.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid storage configuration: {_format_validation_error(e)}"
        ) from e


def load_storage_config(path: Union[str, Path]) -> StorageDocument:
    """
    Read and validate the storage document at ``path``.

    Raises:
        ConfigurationError: When the file is missing, is not JSON, or does
            not match the schema.
    """
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read storage configuration '{config_path}': {e}"
        ) from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Storage configuration '{config_path}' is not valid JSON: {e}"
        ) from e
    return parse_storage_config(data)
