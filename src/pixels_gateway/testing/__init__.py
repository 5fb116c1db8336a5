"""Testing utilities and fakes for the pixels gateway."""

from .fakes import (
    FakeLogger,
    FakeProgressStore,
    FakeRedis,
    FakeS3Client,
    InMemoryStorageBackend,
    RecordingTransformEngine,
    S3Bucket,
    S3Object,
    client_error,
    create_test_image,
    setup_test_storage,
)

__all__ = [
    "FakeLogger",
    "FakeProgressStore",
    "FakeRedis",
    "FakeS3Client",
    "InMemoryStorageBackend",
    "RecordingTransformEngine",
    "S3Bucket",
    "S3Object",
    "client_error",
    "create_test_image",
    "setup_test_storage",
]
