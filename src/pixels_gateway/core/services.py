"""Read-through image orchestration and storage checks."""

import asyncio
import time
from typing import Any, Dict, Mapping, Optional

from .background import BackgroundTaskManager
from .exceptions import InvalidParameter, NotFound
from .models import ImageResult, TransformSpec
from .naming import cache_key_for, split_image_path
from .observability import LogContext, MetricsCollector
from .protocols import LoggerProtocol, TransformEngineProtocol
from .transform import build_operations
from .validation import validate_params
from ..storage.base import StorageBackend
from ..storage.registry import StorageRegistry


class ImageService:
    """
    Serves transformed images, computing and caching them on a miss.

    The storage backend is the only memo: nothing is kept in memory between
    calls. Two concurrent misses on the same key both recompute and the last
    write wins.
    """

    def __init__(
        self,
        registry: StorageRegistry,
        engine: TransformEngineProtocol,
        tasks: BackgroundTaskManager,
        logger: LoggerProtocol,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._registry = registry
        self._engine = engine
        self._tasks = tasks
        self._logger = logger
        self._metrics_collector = metrics_collector

    async def get_image(
        self, path: str, backend_name: str, raw_params: Mapping[str, Any]
    ) -> ImageResult:
        """
        Return the transformed variant of ``path`` on ``backend_name``.

        Raises:
            InvalidParameter: Missing extension, bad or empty params.
            NotFound: Unknown backend or missing original.
            BackendError: Storage failure other than a miss.
            TransformError: The engine rejected an operation.
        """
        split_image_path(path)
        spec = validate_params(raw_params)
        if spec.is_empty():
            raise InvalidParameter("Query params required for conversion")

        cache_key, extension = cache_key_for(path, spec)
        backend = self._registry.get(backend_name)
        context = LogContext(
            operation="get_image", component="image_service"
        ).with_metadata(storage=backend_name, path=path, cache_key=cache_key)

        try:
            cached = await backend.read(cache_key)
            self._logger.debug("Cache hit", context)
            self._record("cache_hit", time.time(), True, storage=backend_name)
            return ImageResult(image=cached, extension=extension)
        except NotFound:
            self._logger.debug("Cache miss", context)

        image = await self.transform_and_store(
            backend, path, cache_key, spec, extension, wait_for_store=False, context=context
        )
        return ImageResult(image=image, extension=extension)

    async def transform_and_store(
        self,
        backend: StorageBackend,
        path: str,
        cache_key: str,
        spec: TransformSpec,
        extension: str,
        *,
        wait_for_store: bool,
        context: Optional[LogContext] = None,
    ) -> bytes:
        """
        Read the original, transform it and store the result at ``cache_key``.

        With ``wait_for_store`` false the write is handed to the background
        task manager and its failure only reaches the logs; otherwise the
        write is awaited and its failure propagates.
        """
        context = context or LogContext(component="image_service").with_metadata(
            storage=backend.name, path=path, cache_key=cache_key
        )
        start_time = time.time()

        original = await backend.read(path, from_cache=False)
        operations = build_operations(spec, extension)
        transformed = await asyncio.to_thread(self._engine.apply, original, operations)

        self._logger.info(
            "Image transformed",
            context.with_operation("transform"),
            operations=len(operations),
            size=len(transformed),
        )
        self._record("transform", start_time, True, storage=backend.name)

        if wait_for_store:
            await backend.write(cache_key, transformed)
        else:
            self._tasks.spawn(
                "store_cached_image",
                backend.write(cache_key, transformed),
                context.with_operation("store_cached_image"),
            )
        return transformed

    def _record(self, operation: str, start_time: float, success: bool, **metadata: Any) -> None:
        if self._metrics_collector:
            self._metrics_collector.record(operation, start_time, success, **metadata)


class StorageConfigService:
    """Checks that a configured backend accepts its credentials."""

    def __init__(self, registry: StorageRegistry, logger: LoggerProtocol):
        self._registry = registry
        self._logger = logger

    async def check_storage_credentials(self, backend_name: str) -> Dict[str, Any]:
        backend = self._registry.get(backend_name)
        context = LogContext(
            operation="check_storage_credentials", component="storage_config"
        ).with_metadata(storage=backend_name, kind=backend.kind)
        await backend.check_credentials()
        self._logger.info("Storage credentials accepted", context)
        return {"success": True, "message": f"Credentials for '{backend_name}' are valid"}
