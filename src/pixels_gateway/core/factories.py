"""Factory classes wiring the gateway's services together."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .background import BackgroundTaskManager
from .batch import BatchRunner
from .config import Settings, load_storage_config
from .observability import (
    LogLevel,
    MetricsCollector,
    ObservabilityConfig,
    create_logger,
    create_metrics_collector,
)
from .protocols import LoggerProtocol, ProgressStoreProtocol, TransformEngineProtocol
from .services import ImageService, StorageConfigService
from .transform import TransformEngine
from ..progress.redis_store import RedisProgressStore
from ..storage.registry import StorageRegistry


class LoggerAdapter:
    """Adapter to make a standard logger compatible with LoggerProtocol."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._logger.debug(message)

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._logger.info(message)

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._logger.warning(message)

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._logger.error(message)


@dataclass
class GatewayContext:
    """Everything a request handler needs, built once per process."""

    settings: Settings
    registry: StorageRegistry
    progress_store: ProgressStoreProtocol
    tasks: BackgroundTaskManager
    image_service: ImageService
    batch_runner: BatchRunner
    storage_config_service: StorageConfigService
    logger: LoggerProtocol
    metrics_collector: Optional[MetricsCollector] = None

    async def startup(self) -> None:
        await self.registry.connect_all()

    async def shutdown(self) -> None:
        await self.tasks.shutdown(timeout=self.settings.request_timeout_seconds)
        await self.registry.close_all()
        close = getattr(self.progress_store, "close", None)
        if close is not None:
            await close()


class GatewayContextFactory:
    """Factory for creating a fully wired ``GatewayContext``."""

    @staticmethod
    def create_context(
        settings: Settings,
        registry: Optional[StorageRegistry] = None,
        progress_store: Optional[ProgressStoreProtocol] = None,
        engine: Optional[TransformEngineProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> GatewayContext:
        """
        Create the gateway context.

        Any collaborator left out is built from ``settings``: the registry
        from the storage document, the progress store from ``REDIS_URL``.
        """
        observability = ObservabilityConfig(
            log_level=LogLevel[settings.log_level.upper()]
            if settings.log_level.upper() in LogLevel.__members__
            else LogLevel.INFO
        )
        if logger is None:
            logger = create_logger("gateway", observability)
        if metrics_collector is None:
            metrics_collector = create_metrics_collector(observability)
        if registry is None:
            registry = StorageRegistry.from_document(
                load_storage_config(settings.storage_config_path)
            )
        if progress_store is None:
            progress_store = RedisProgressStore.from_url(
                settings.redis_url, ttl_seconds=settings.progress_ttl_seconds
            )
        if engine is None:
            engine = TransformEngine()

        tasks = BackgroundTaskManager(logger, metrics_collector)
        image_service = ImageService(registry, engine, tasks, logger, metrics_collector)
        batch_runner = BatchRunner(
            registry,
            image_service,
            progress_store,
            tasks,
            logger,
            concurrency=settings.batch_concurrency,
            metrics_collector=metrics_collector,
        )
        return GatewayContext(
            settings=settings,
            registry=registry,
            progress_store=progress_store,
            tasks=tasks,
            image_service=image_service,
            batch_runner=batch_runner,
            storage_config_service=StorageConfigService(registry, logger),
            logger=logger,
            metrics_collector=metrics_collector,
        )
