"""Core components of the pixels gateway."""

from .exceptions import (
    AuthError,
    BackendError,
    ConfigurationError,
    GatewayError,
    InvalidParameter,
    NotFound,
    RequestTimeout,
    TransformError,
    Unsupported,
)
from .logging_config import get_logger, setup_logger
from .models import BatchError, BatchProgress, ImageResult, StorageLocation, TransformSpec
from .naming import cache_key_for, derive_name, split_image_path
from .validation import validate_params

__all__ = [
    "GatewayError",
    "InvalidParameter",
    "NotFound",
    "Unsupported",
    "BackendError",
    "TransformError",
    "AuthError",
    "RequestTimeout",
    "ConfigurationError",
    "setup_logger",
    "get_logger",
    "TransformSpec",
    "StorageLocation",
    "ImageResult",
    "BatchError",
    "BatchProgress",
    "derive_name",
    "split_image_path",
    "cache_key_for",
    "validate_params",
]
