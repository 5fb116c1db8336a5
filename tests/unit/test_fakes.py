"""Tests for fake implementations to ensure they work correctly."""

import io

import pytest
from botocore.exceptions import ClientError
from PIL import Image
from redis.exceptions import ConnectionError as RedisConnectionError

from pixels_gateway.core.exceptions import BackendError, NotFound, Unsupported
from pixels_gateway.core.models import BatchProgress
from pixels_gateway.core.observability import LogContext
from pixels_gateway.testing.fakes import (
    FakeLogger,
    FakeProgressStore,
    FakeRedis,
    FakeS3Client,
    InMemoryStorageBackend,
    create_test_image,
    setup_test_storage,
)


class TestFakeS3Client:
    """Tests for FakeS3Client to ensure it behaves like aioboto3."""

    @pytest.mark.asyncio
    async def test_get_object_success(self):
        client = FakeS3Client()
        client.create_bucket("bucket").add_object("a.jpg", b"data")

        response = await client.get_object(Bucket="bucket", Key="a.jpg")

        assert await response["Body"].read() == b"data"
        assert client.calls == ["GetObject"]

    @pytest.mark.asyncio
    async def test_missing_key_and_bucket(self):
        client = FakeS3Client()
        client.create_bucket("bucket")

        with pytest.raises(ClientError) as key_error:
            await client.get_object(Bucket="bucket", Key="nope")
        with pytest.raises(ClientError) as bucket_error:
            await client.get_object(Bucket="other", Key="nope")

        assert key_error.value.response["Error"]["Code"] == "NoSuchKey"
        assert bucket_error.value.response["Error"]["Code"] == "NoSuchBucket"

    @pytest.mark.asyncio
    async def test_put_object_records_acl(self):
        client = FakeS3Client()
        bucket = client.create_bucket("bucket")

        await client.put_object(Bucket="bucket", Key="k", Body=b"x", ContentType="image/png", ACL="public-read")

        assert bucket.objects["k"].acl == "public-read"
        assert bucket.objects["k"].content_type == "image/png"

    @pytest.mark.asyncio
    async def test_failure_mode_counts_down(self):
        client = FakeS3Client()
        client.create_bucket("bucket")
        client.set_failure_mode("SlowDown", times=1)

        with pytest.raises(ClientError):
            await client.head_bucket(Bucket="bucket")
        await client.head_bucket(Bucket="bucket")

    @pytest.mark.asyncio
    async def test_paginator_splits_pages(self):
        client = FakeS3Client(page_size=2)
        bucket = client.create_bucket("bucket")
        for index in range(5):
            bucket.add_object(f"p/{index}.jpg", b"x")
        paginator = client.get_paginator("list_objects_v2")

        pages = [page async for page in paginator.paginate(Bucket="bucket", Prefix="p/")]

        assert [page["KeyCount"] for page in pages] == [2, 2, 1]
        assert "NextContinuationToken" not in pages[-1]


class TestFakeRedis:
    """Tests for FakeRedis."""

    @pytest.mark.asyncio
    async def test_set_get_with_expiry(self):
        redis = FakeRedis()

        await redis.set("k", "v", ex=30)

        assert await redis.get("k") == "v"
        assert redis.expirations["k"] == 30
        assert await redis.get("missing") is None

    @pytest.mark.asyncio
    async def test_failure_raises_redis_error(self):
        redis = FakeRedis()
        redis.should_fail = True

        with pytest.raises(RedisConnectionError):
            await redis.ping()


class TestInMemoryStorageBackend:
    """Tests for InMemoryStorageBackend."""

    @pytest.mark.asyncio
    async def test_reads_split_originals_and_cache(self):
        backend = InMemoryStorageBackend("m", {"a.jpg": b"orig"})
        await backend.write("a_w10.jpg", b"variant")

        assert await backend.read("a.jpg", from_cache=False) == b"orig"
        assert await backend.read("a_w10.jpg") == b"variant"
        with pytest.raises(NotFound):
            await backend.read("a.jpg")
        assert backend.reads[0] == {"key": "a.jpg", "from_cache": False}

    @pytest.mark.asyncio
    async def test_failure_injection(self):
        backend = InMemoryStorageBackend("m", {"a.jpg": b"orig"})
        backend.fail_reads.add("a.jpg")
        backend.fail_writes = True

        with pytest.raises(BackendError):
            await backend.read("a.jpg", from_cache=False)
        with pytest.raises(BackendError):
            await backend.write("b.jpg", b"x")
        assert backend.writes == ["b.jpg"]

    @pytest.mark.asyncio
    async def test_list_by_directory(self):
        backend = setup_test_storage(count=2)
        backend.add_original("other/x.jpg", b"x")

        assert await backend.list("photos") == ["photos/p1.jpg", "photos/p2.jpg"]
        assert len(await backend.list("")) == 3

    @pytest.mark.asyncio
    async def test_list_unsupported(self):
        backend = InMemoryStorageBackend(supports_list=False)

        with pytest.raises(Unsupported):
            await backend.list("")


class TestFakeProgressStore:
    """Tests for FakeProgressStore."""

    @pytest.mark.asyncio
    async def test_snapshots_are_copies(self):
        store = FakeProgressStore()
        progress = BatchProgress(done=0, pending=1)

        await store.save_progress("t", progress)
        progress.done = 5

        assert (await store.get_progress("t")).done == 0
        assert len(store.history) == 1

    @pytest.mark.asyncio
    async def test_unknown_token(self):
        with pytest.raises(NotFound):
            await FakeProgressStore().get_progress("nope")


class TestFakeLogger:
    """Tests for FakeLogger."""

    def test_logging_levels(self):
        logger = FakeLogger()

        logger.debug("Debug message")
        logger.info("Info message")
        logger.warning("Warning message")
        logger.error("Error message")

        assert [log["level"] for log in logger.logs] == ["DEBUG", "INFO", "WARNING", "ERROR"]
        assert logger.get_logs("ERROR")[0]["message"] == "Error message"

    def test_context_is_merged(self):
        logger = FakeLogger()
        context = LogContext(operation="read", component="storage").with_metadata(path="a.jpg")

        logger.info("Read", context, size=3)

        entry = logger.logs[0]
        assert (entry["operation"], entry["component"], entry["path"], entry["size"]) == (
            "read",
            "storage",
            "a.jpg",
            3,
        )

    def test_clear_logs(self):
        logger = FakeLogger()
        logger.info("x")

        logger.clear_logs()

        assert logger.logs == []


def test_create_test_image():
    data = create_test_image(width=60, height=40, format="PNG")

    image = Image.open(io.BytesIO(data))
    assert image.size == (60, 40)
    assert image.format == "PNG"
    assert image.getpixel((0, 0)) == (0, 0, 255)
    assert image.getpixel((59, 39)) == (255, 0, 0)
