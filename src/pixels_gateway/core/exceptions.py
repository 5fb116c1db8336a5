"""Error taxonomy for the pixels gateway.

Every error carries the HTTP status it maps to, so the API layer can turn
any ``GatewayError`` into a ``{"success": false, "error": ...}`` body
without a lookup table.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base exception for all gateway errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_response(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message}


class InvalidParameter(GatewayError):
    """A client supplied parameter failed validation."""

    status_code = 400

    def __init__(
        self, message: str, key: Optional[str] = None, value: Any = None
    ) -> None:
        super().__init__(message)
        self.key = key
        self.value = value


class NotFound(GatewayError):
    """An original, cached object, backend or progress record is absent."""

    status_code = 404


class Unsupported(GatewayError):
    """The operation is not implemented for this backend variant."""

    status_code = 500


class BackendError(GatewayError):
    """Storage, network or progress store failure."""

    status_code = 502


class TransformError(GatewayError):
    """Image processing failed.

    400 when an operation rejects its argument, 502 when the engine itself
    cannot decode or encode the image.
    """

    status_code = 400

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        argument: Any = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, status_code)
        self.operation = operation
        self.argument = argument


class AuthError(GatewayError):
    """Backend credentials were rejected."""

    status_code = 401


class RequestTimeout(GatewayError):
    """The request exceeded its wall-clock budget."""

    status_code = 504


class ConfigurationError(GatewayError):
    """Invalid or unreadable configuration."""

    status_code = 500
