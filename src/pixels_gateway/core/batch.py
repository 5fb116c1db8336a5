"""Batch job runner with progress persisted per token."""

import asyncio
import time
from typing import Any, List, Mapping, Optional

from .background import BackgroundTaskManager
from .error_handling import BatchOperationContext
from .exceptions import BackendError, GatewayError, InvalidParameter
from .models import BatchError, BatchProgress, TransformSpec
from .naming import cache_key_for
from .observability import LogContext, MetricsCollector
from .protocols import LoggerProtocol, ProgressStoreProtocol
from .services import ImageService
from .validation import validate_params
from ..storage.base import StorageBackend
from ..storage.registry import StorageRegistry


class ProgressTracker:
    """
    Single point of mutation for one batch run's progress.

    Every update changes the counters and persists the full snapshot while
    holding the lock, so the stored record never goes backwards. A failed
    persist is logged and the run carries on.
    """

    def __init__(
        self,
        token: str,
        total: int,
        store: ProgressStoreProtocol,
        logger: LoggerProtocol,
        context: Optional[LogContext] = None,
    ):
        self.token = token
        self._store = store
        self._logger = logger
        self._context = context or LogContext(component="batch")
        self._lock = asyncio.Lock()
        self._progress = BatchProgress(done=0, pending=total, errors=[])

    @property
    def snapshot(self) -> BatchProgress:
        return self._progress.model_copy(deep=True)

    async def start(self) -> None:
        async with self._lock:
            await self._persist()

    async def mark_done(self) -> None:
        async with self._lock:
            self._progress.done += 1
            self._progress.pending -= 1
            await self._persist()

    async def mark_failed(self, file_path: str, error: str) -> None:
        async with self._lock:
            self._progress.pending -= 1
            self._progress.errors.append(BatchError(file_path=file_path, error=error))
            await self._persist()

    async def _persist(self) -> None:
        try:
            await self._store.save_progress(self.token, self._progress)
        except Exception as e:
            self._logger.error(
                "Failed to persist batch progress",
                self._context.with_operation("persist_progress"),
                token=self.token,
                error=str(e),
            )


class BatchRunner:
    """
    Runs one transformation over many files of a backend.

    Submission checks its preconditions, persists the initial
    ``{done: 0, pending: N}`` record and returns the background task
    running the job; progress is then observable through ``get_progress``.
    """

    def __init__(
        self,
        registry: StorageRegistry,
        image_service: ImageService,
        progress_store: ProgressStoreProtocol,
        tasks: BackgroundTaskManager,
        logger: LoggerProtocol,
        concurrency: int = 4,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._registry = registry
        self._image_service = image_service
        self._progress_store = progress_store
        self._tasks = tasks
        self._logger = logger
        self._concurrency = max(1, concurrency)
        self._metrics_collector = metrics_collector

    def _prepare(self, backend_name: str, raw_params: Mapping[str, Any]):
        if backend_name not in self._registry:
            raise InvalidParameter(
                f"Storage '{backend_name}' not found.", key="storageName", value=backend_name
            )
        spec = validate_params(raw_params)
        if spec.is_empty():
            raise InvalidParameter("No transformations provided.", key="transformations")
        return self._registry.get(backend_name), spec

    async def submit_directory(
        self,
        token: str,
        backend_name: str,
        dir_path: str,
        raw_params: Mapping[str, Any],
    ) -> asyncio.Task:
        """List ``dir_path`` and start processing every file found."""
        backend, spec = self._prepare(backend_name, raw_params)
        try:
            file_paths = await backend.list(dir_path)
        except GatewayError:
            raise
        except Exception as e:
            raise BackendError(f"Failed to list '{dir_path}' on '{backend_name}': {e}") from e
        return await self._start(token, backend, file_paths, spec)

    async def submit_list(
        self,
        token: str,
        backend_name: str,
        file_paths: List[str],
        raw_params: Mapping[str, Any],
    ) -> asyncio.Task:
        """Start processing an explicit list of files."""
        backend, spec = self._prepare(backend_name, raw_params)
        if not file_paths:
            raise InvalidParameter("No files provided for processing.", key="filePaths")
        return await self._start(token, backend, list(file_paths), spec)

    async def get_progress(self, token: str) -> BatchProgress:
        return await self._progress_store.get_progress(token)

    async def _start(
        self,
        token: str,
        backend: StorageBackend,
        file_paths: List[str],
        spec: TransformSpec,
    ) -> asyncio.Task:
        context = LogContext(component="batch_runner").with_metadata(
            token=token, storage=backend.name, files=len(file_paths)
        )
        tracker = ProgressTracker(token, len(file_paths), self._progress_store, self._logger, context)
        await tracker.start()
        self._logger.info("Batch submitted", context.with_operation("submit"))
        return self._tasks.spawn(
            "batch_process",
            self._run(tracker, backend, file_paths, spec, context),
            context,
        )

    async def _run(
        self,
        tracker: ProgressTracker,
        backend: StorageBackend,
        file_paths: List[str],
        spec: TransformSpec,
        context: LogContext,
    ) -> BatchProgress:
        token = tracker.token
        start_time = time.time()
        semaphore = asyncio.Semaphore(self._concurrency)

        with BatchOperationContext(f"Batch {token}") as batch:

            async def process(file_path: str) -> None:
                async with semaphore:
                    try:
                        cache_key, extension = cache_key_for(file_path, spec)
                        await self._image_service.transform_and_store(
                            backend,
                            file_path,
                            cache_key,
                            spec,
                            extension,
                            wait_for_store=True,
                            context=context.with_metadata(path=file_path),
                        )
                    except Exception as e:
                        batch.add_error(str(e), file_path)
                        await tracker.mark_failed(file_path, str(e))
                    else:
                        await tracker.mark_done()

            await asyncio.gather(*(process(path) for path in file_paths))

        result = tracker.snapshot
        self._logger.info(
            "Batch finished",
            context.with_operation("complete"),
            done=result.done,
            failed=len(result.errors),
        )
        if self._metrics_collector:
            self._metrics_collector.record(
                "batch_process", start_time, not result.errors, token=token, done=result.done
            )
        return result
