"""Observability utilities for structured logging and task metrics."""

import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .logging_config import get_logger


class LogLevel(Enum):
    """Log levels for structured logging."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class LogContext:
    """Context information for structured logging."""

    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        """Create new context with operation set."""
        return LogContext(
            correlation_id=self.correlation_id,
            operation=operation,
            component=self.component,
            metadata=self.metadata.copy(),
        )

    def with_metadata(self, **kwargs: Any) -> "LogContext":
        """Create new context with additional metadata."""
        new_metadata = self.metadata.copy()
        new_metadata.update(kwargs)
        return LogContext(
            correlation_id=self.correlation_id,
            operation=self.operation,
            component=self.component,
            metadata=new_metadata,
        )


class StructuredLogger:
    """Structured logger with context support."""

    def __init__(self, name: str, level: int = logging.INFO):
        self._logger = get_logger(name)
        self._logger.setLevel(level)

    def _log(
        self,
        level: LogLevel,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        formatted_message = message
        if context:
            formatted_message = f"[{context.correlation_id}] {message}"
            if context.operation:
                formatted_message = f"[{context.operation}] {formatted_message}"

            fields = {**context.metadata, **kwargs}
            if fields:
                metadata_str = ", ".join(f"{k}={v}" for k, v in fields.items())
                formatted_message = f"{formatted_message} ({metadata_str})"
        elif kwargs:
            metadata_str = ", ".join(f"{k}={v}" for k, v in kwargs.items())
            formatted_message = f"{message} ({metadata_str})"

        self._logger.log(
            getattr(logging, level.value), formatted_message, exc_info=exc_info
        )

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(LogLevel.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(LogLevel.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(LogLevel.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self._log(LogLevel.ERROR, message, context, **kwargs)


@dataclass
class PerformanceMetrics:
    """Outcome and timing of one operation."""

    operation: str
    start_time: float
    end_time: float
    success: bool
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class MetricsCollector:
    """In-process collector for operation metrics."""

    def __init__(self) -> None:
        self._metrics: List[PerformanceMetrics] = []

    def record_metric(self, metric: PerformanceMetrics) -> None:
        self._metrics.append(metric)

    def record(
        self,
        operation: str,
        start_time: float,
        success: bool,
        error_message: Optional[str] = None,
        **metadata: Any,
    ) -> PerformanceMetrics:
        """Record an operation that started at ``start_time`` and ended now."""
        metric = PerformanceMetrics(
            operation=operation,
            start_time=start_time,
            end_time=time.time(),
            success=success,
            error_message=error_message,
            metadata=metadata,
        )
        self.record_metric(metric)
        return metric

    def get_metrics(self, operation: Optional[str] = None) -> List[PerformanceMetrics]:
        """Get recorded metrics, optionally filtered by operation."""
        if operation:
            return [m for m in self._metrics if m.operation == operation]
        return self._metrics.copy()

    def get_summary(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Get summary statistics for metrics."""
        metrics = self.get_metrics(operation)

        if not metrics:
            return {}

        durations = [m.duration for m in metrics]
        successful = [m for m in metrics if m.success]

        return {
            "total_operations": len(metrics),
            "successful_operations": len(successful),
            "failed_operations": len(metrics) - len(successful),
            "success_rate": len(successful) / len(metrics),
            "avg_duration": sum(durations) / len(durations),
            "max_duration": max(durations),
        }


class ObservabilityConfig:
    """Configuration for observability features."""

    def __init__(
        self,
        log_level: LogLevel = LogLevel.INFO,
        enable_metrics: bool = True,
        component_name: str = "pixels-gateway",
    ):
        self.log_level = log_level
        self.enable_metrics = enable_metrics
        self.component_name = component_name


def create_logger(name: str, config: ObservabilityConfig) -> StructuredLogger:
    """Create a structured logger with the given configuration."""
    return StructuredLogger(name, getattr(logging, config.log_level.value))


def create_metrics_collector(config: ObservabilityConfig) -> Optional[MetricsCollector]:
    """Create a metrics collector if enabled in config."""
    if config.enable_metrics:
        return MetricsCollector()
    return None
