"""Unit tests for the batch runner and progress tracker."""

import asyncio

import pytest

from pixels_gateway.core.background import BackgroundTaskManager
from pixels_gateway.core.batch import BatchRunner, ProgressTracker
from pixels_gateway.core.exceptions import InvalidParameter, NotFound, Unsupported
from pixels_gateway.core.models import BatchError, BatchProgress
from pixels_gateway.core.services import ImageService
from pixels_gateway.storage.registry import StorageRegistry
from pixels_gateway.testing.fakes import (
    FakeLogger,
    FakeProgressStore,
    InMemoryStorageBackend,
    RecordingTransformEngine,
    create_test_image,
)

FILES = [f"batch/f{index}.jpg" for index in range(1, 6)]


@pytest.fixture
def backend():
    storage = InMemoryStorageBackend("media")
    for path in FILES:
        if path != "batch/f3.jpg":
            storage.add_original(path, create_test_image(40, 20))
    return storage


@pytest.fixture
def store():
    return FakeProgressStore()


@pytest.fixture
def logger():
    return FakeLogger()


@pytest.fixture
def runner(backend, store, logger):
    registry = StorageRegistry({"media": backend})
    tasks = BackgroundTaskManager(logger)
    service = ImageService(registry, RecordingTransformEngine(), tasks, logger)
    return BatchRunner(registry, service, store, tasks, logger, concurrency=2)


class TestBatchRunnerList:
    """Tests for BatchRunner.submit_list."""

    @pytest.mark.asyncio
    async def test_partial_failure_is_recorded_per_file(self, runner, store, backend):
        """Five files with the third missing: four done, one error, nothing pending."""
        task = await runner.submit_list("tok", "media", FILES, {"width": "20"})
        result = await task

        assert result.done == 4
        assert result.pending == 0
        assert [error.file_path for error in result.errors] == ["batch/f3.jpg"]
        assert await runner.get_progress("tok") == result
        assert sorted(backend.cache) == [
            "batch/f1-w-20.jpg",
            "batch/f2-w-20.jpg",
            "batch/f4-w-20.jpg",
            "batch/f5-w-20.jpg",
        ]

    @pytest.mark.asyncio
    async def test_initial_progress_visible_when_submit_returns(self, runner, store):
        """The token can be polled as soon as submission returns."""
        task = await runner.submit_list("tok", "media", FILES, {"width": "20"})

        assert store.snapshots["tok"] == BatchProgress(done=0, pending=5, errors=[])
        assert not task.done()

        await task

    @pytest.mark.asyncio
    async def test_progress_persisted_after_every_mutation(self, runner, store):
        task = await runner.submit_list("tok", "media", FILES, {"width": "20"})
        await task

        history = store.history
        assert history[0] == BatchProgress(done=0, pending=5, errors=[])
        assert len(history) == 1 + len(FILES)
        pendings = [snapshot.pending for snapshot in history]
        assert pendings == sorted(pendings, reverse=True)
        assert all(s.done + s.pending + len(s.errors) == 5 for s in history)

    @pytest.mark.asyncio
    async def test_batch_always_overwrites_cache(self, runner, backend):
        """Batch mode recomputes even when the variant already exists."""
        backend.cache["batch/f1-w-20.jpg"] = b"stale"

        task = await runner.submit_list("tok", "media", ["batch/f1.jpg"], {"width": "20"})
        await task

        assert backend.cache["batch/f1-w-20.jpg"] != b"stale"

    @pytest.mark.asyncio
    async def test_failed_store_counts_as_file_error(self, runner, backend):
        backend.fail_writes = True

        result = await (await runner.submit_list("tok", "media", FILES[:2], {"blur": "1"}))

        assert result.done == 0
        assert len(result.errors) == 2
        assert "Simulated write failure" in result.errors[0].error

    @pytest.mark.asyncio
    async def test_invalid_file_extension_is_a_file_error(self, runner):
        result = await (
            await runner.submit_list("tok", "media", ["batch/f1.jpg", "batch/notes"], {"blur": "1"})
        )

        assert result.done == 1
        assert result.errors == [
            BatchError(file_path="batch/notes", error="File extension is missing")
        ]

    @pytest.mark.asyncio
    async def test_reused_token_resets_record(self, runner, store):
        await (await runner.submit_list("tok", "media", FILES, {"width": "20"}))
        second = await (await runner.submit_list("tok", "media", FILES[:1], {"width": "30"}))

        assert second == BatchProgress(done=1, pending=0, errors=[])
        assert await runner.get_progress("tok") == second

    @pytest.mark.asyncio
    async def test_empty_list_rejected(self, runner, store):
        with pytest.raises(InvalidParameter, match="No files provided for processing."):
            await runner.submit_list("tok", "media", [], {"width": "20"})

        assert store.history == []

    @pytest.mark.asyncio
    async def test_empty_transformations_rejected(self, runner):
        with pytest.raises(InvalidParameter, match="No transformations provided."):
            await runner.submit_list("tok", "media", FILES, {})

    @pytest.mark.asyncio
    async def test_unknown_backend_rejected(self, runner):
        with pytest.raises(InvalidParameter, match="Storage 'nope' not found."):
            await runner.submit_list("tok", "nope", FILES, {"width": "20"})

    @pytest.mark.asyncio
    async def test_invalid_transformations_rejected(self, runner):
        with pytest.raises(InvalidParameter):
            await runner.submit_list("tok", "media", FILES, {"quality": "101"})

    @pytest.mark.asyncio
    async def test_unknown_token_progress(self, runner):
        with pytest.raises(NotFound):
            await runner.get_progress("missing")

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, backend, store, logger):
        """No more than ``concurrency`` files are in flight at once."""
        registry = StorageRegistry({"media": backend})
        tasks = BackgroundTaskManager(logger)
        service = ImageService(registry, RecordingTransformEngine(), tasks, logger)
        in_flight = 0
        peak = 0
        original_read = backend.read

        async def slow_read(key, *, from_cache=True):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return await original_read(key, from_cache=from_cache)

        backend.read = slow_read
        runner = BatchRunner(registry, service, store, tasks, logger, concurrency=2)

        await (await runner.submit_list("tok", "media", FILES, {"width": "20"}))

        assert peak <= 2


class TestBatchRunnerDirectory:
    """Tests for BatchRunner.submit_directory."""

    @pytest.mark.asyncio
    async def test_lists_directory_and_processes_every_file(self, runner, backend):
        backend.add_original("other/x.jpg", create_test_image(10, 10))

        result = await (await runner.submit_directory("tok", "media", "batch", {"flip": "1"}))

        assert result.done == 4
        assert result.errors == []
        assert "other/x-flip-true.jpg" not in backend.cache

    @pytest.mark.asyncio
    async def test_unsupported_listing_propagates_before_progress(self, store, logger):
        backend = InMemoryStorageBackend("ftp", supports_list=False)
        registry = StorageRegistry({"ftp": backend})
        tasks = BackgroundTaskManager(logger)
        service = ImageService(registry, RecordingTransformEngine(), tasks, logger)
        runner = BatchRunner(registry, service, store, tasks, logger)

        with pytest.raises(Unsupported):
            await runner.submit_directory("tok", "ftp", "batch", {"flip": "1"})

        assert store.history == []


class TestProgressTracker:
    """Tests for ProgressTracker."""

    @pytest.mark.asyncio
    async def test_persist_failure_is_logged_not_raised(self, logger):
        store = FakeProgressStore()
        store.should_fail = True
        tracker = ProgressTracker("tok", 2, store, logger)

        await tracker.start()
        await tracker.mark_done()
        await tracker.mark_failed("a.jpg", "boom")

        assert tracker.snapshot == BatchProgress(
            done=1, pending=0, errors=[BatchError(file_path="a.jpg", error="boom")]
        )
        assert len(logger.get_logs("ERROR")) == 3

    @pytest.mark.asyncio
    async def test_concurrent_updates_are_not_lost(self, logger):
        store = FakeProgressStore()
        tracker = ProgressTracker("tok", 50, store, logger)

        await asyncio.gather(*(tracker.mark_done() for _ in range(50)))

        assert store.snapshots["tok"] == BatchProgress(done=50, pending=0, errors=[])
