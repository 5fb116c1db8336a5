"""S3 compatible object store backend on aioboto3."""

import posixpath
from typing import Any, Callable, List, Optional

import aioboto3
from botocore.config import Config as BotoConfig

from ..core.config import S3StorageConfig
from ..core.error_handling import retry_backend_operation, with_error_handling
from ..core.exceptions import NotFound
from ..core.formats import content_type_for
from ..core.logging_config import get_logger
from .base import StorageBackend, join_key

logger = get_logger("storage.s3")

ClientFactory = Callable[[], Any]


class ObjectStoreBackend(StorageBackend):
    """
    Connectionless S3 backend.

    Every operation opens a client from ``client_factory``, which must return
    an async context manager yielding an aioboto3 style S3 client. Tests pass
    a factory returning a fake.
    """

    kind = "s3"

    def __init__(
        self,
        name: str,
        config: S3StorageConfig,
        client_factory: Optional[ClientFactory] = None,
    ):
        super().__init__(name)
        self.config = config
        self._session: Optional[aioboto3.Session] = None
        self._client_factory = client_factory or self._default_client_factory

    def _default_client_factory(self):
        if self._session is None:
            self._session = aioboto3.Session()
        return self._session.client(
            "s3",
            endpoint_url=self.config.endpoint,
            region_name=self.config.region,
            aws_access_key_id=self.config.access_key,
            aws_secret_access_key=self.config.secret_key,
            config=BotoConfig(s3={"addressing_style": "path"}),
        )

    def _object_key(self, key: str, from_cache: bool) -> str:
        if from_cache and self.config.convert_path:
            return join_key(self.config.convert_path, key)
        return join_key(self.config.prefix, key)

    @retry_backend_operation()
    @with_error_handling
    async def read(self, key: str, *, from_cache: bool = True) -> bytes:
        object_key = self._object_key(key, from_cache)
        logger.debug(f"Reading s3://{self.config.bucket}/{object_key}")
        async with self._client_factory() as s3:
            response = await s3.get_object(Bucket=self.config.bucket, Key=object_key)
            body = await response["Body"].read()
        if not body:
            raise NotFound("File content is empty or not found.")
        return body

    @retry_backend_operation()
    @with_error_handling
    async def write(self, key: str, data: bytes) -> None:
        object_key = self._object_key(key, from_cache=True)
        extension = posixpath.splitext(object_key)[1].lstrip(".")
        logger.debug(f"Writing {len(data)} bytes to s3://{self.config.bucket}/{object_key}")
        async with self._client_factory() as s3:
            await s3.put_object(
                Bucket=self.config.bucket,
                Key=object_key,
                Body=data,
                ContentType=content_type_for(extension),
                ACL=self.config.acl,
            )

    @retry_backend_operation()
    @with_error_handling
    async def list(self, prefix: str) -> List[str]:
        """
        List every original under ``prefix``.

        Pagination is drained completely. Directory markers are skipped and
        the configured base prefix is stripped from the returned keys.
        """
        base = join_key(self.config.prefix, "") if self.config.prefix else ""
        list_prefix = join_key(self.config.prefix, prefix)
        if list_prefix and not list_prefix.endswith("/"):
            list_prefix += "/"

        keys: List[str] = []
        async with self._client_factory() as s3:
            paginator = s3.get_paginator("list_objects_v2")
            async for page in paginator.paginate(
                Bucket=self.config.bucket, Prefix=list_prefix
            ):
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    if key.endswith("/"):
                        continue
                    if base and key.startswith(base):
                        key = key[len(base):]
                    keys.append(key)

        logger.info(f"Found {len(keys)} object(s) under s3://{self.config.bucket}/{list_prefix}")
        return keys

    @with_error_handling
    async def check_credentials(self) -> None:
        async with self._client_factory() as s3:
            await s3.head_bucket(Bucket=self.config.bucket)
