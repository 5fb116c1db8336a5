# src/pixels_gateway/core/error_handling.py

import asyncio
import functools
import logging

from botocore.exceptions import BotoCoreError, ClientError as BotocoreClientError
from botocore.exceptions import ConnectionClosedError, EndpointConnectionError
from redis.exceptions import RedisError

from .exceptions import AuthError, BackendError, GatewayError, NotFound

RETRYABLE_S3_ERROR_CODES = (
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "SlowDown",
    "RequestTimeout",
    "InternalError",
    "ServiceUnavailable",
)
NOT_FOUND_S3_ERROR_CODES = ("NoSuchKey", "NotFound", "404")
AUTH_S3_ERROR_CODES = (
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "AccessDenied",
    "ExpiredToken",
    "InvalidToken",
    "401",
    "403",
)


def _client_error_code(error: BotocoreClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def translate_error(exc: Exception, operation: str) -> Exception:
    """Map a library exception onto the gateway taxonomy."""
    if isinstance(exc, GatewayError):
        return exc
    if isinstance(exc, BotocoreClientError):
        code = _client_error_code(exc)
        if code == "NoSuchBucket":
            return BackendError(f"Bucket not found in {operation}: {exc}")
        if code in NOT_FOUND_S3_ERROR_CODES:
            return NotFound("Image not exists in storage")
        if code in AUTH_S3_ERROR_CODES:
            return AuthError(f"Storage rejected credentials in {operation}: {exc}")
        return BackendError(f"S3 operation failed in {operation}: {exc}")
    if isinstance(exc, BotoCoreError):
        return BackendError(f"S3 client failure in {operation}: {exc}")
    if isinstance(exc, RedisError):
        return BackendError(f"Issue with redis in {operation}: {exc}")
    return exc


def with_error_handling(func):
    """
    Decorator for coroutine functions that standardizes backend errors.

    Gateway errors pass through untouched, botocore and redis failures are
    translated, anything else is logged and re-raised as is.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__ + "." + func.__name__)
        try:
            return await func(*args, **kwargs)
        except GatewayError:
            raise
        except Exception as e:
            translated = translate_error(e, func.__name__)
            if isinstance(translated, NotFound):
                logger.debug(f"'{func.__name__}' found nothing: {e}")
            else:
                logger.error(f"Error in '{func.__name__}': {e}", exc_info=True)
            if translated is e:
                raise
            raise translated from e

    return wrapper


def is_retryable(error: BaseException) -> bool:
    cause = error.__cause__
    if isinstance(cause, BotocoreClientError):
        return _client_error_code(cause) in RETRYABLE_S3_ERROR_CODES
    return isinstance(cause, (EndpointConnectionError, ConnectionClosedError))


def retry_backend_operation(max_attempts=3, initial_delay=0.5, backoff_factor=2):
    """
    Decorator to retry coroutine backend operations with exponential backoff.

    Only ``BackendError``s whose cause is a throttling or connection failure
    are retried; every other error propagates on the first attempt.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__ + "." + func.__name__)
            delay = initial_delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except BackendError as e:
                    if not is_retryable(e):
                        raise
                    if attempt >= max_attempts:
                        logger.error(
                            f"Backend operation '{func.__name__}' failed after "
                            f"{max_attempts} attempts. Error: {e}"
                        )
                        raise
                    logger.info(
                        f"Backend operation '{func.__name__}' failed. Attempt "
                        f"{attempt}/{max_attempts}. Retrying in {delay:.2f}s. Error: {e}"
                    )
                    await asyncio.sleep(delay)
                    delay *= backoff_factor

        return wrapper

    return decorator


class BatchOperationContext:
    """
    Context manager for batch runs to collect and summarize per-item errors.
    """

    def __init__(self, operation_name="Batch Operation"):
        self.operation_name = operation_name
        self.errors = []
        self.logger = logging.getLogger(
            self.__class__.__module__ + "." + self.__class__.__name__
        )

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
            )
        elif self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i + 1}/{len(self.errors)} for item "
                    f"'{error_detail['item']}': {error_detail['error']}"
                )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")
        return False

    def add_error(self, error_message: str, item_identifier: str = "Unknown item"):
        """Report an error for a specific item within the ``with`` block."""
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(
            f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}"
        )
