"""Supported image extensions and their content types."""

from typing import Dict, Optional

from .exceptions import InvalidParameter

# extension -> Pillow format name; None means raw pixel bytes
PILLOW_FORMATS: Dict[str, Optional[str]] = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "gif": "GIF",
    "tiff": "TIFF",
    "avif": "AVIF",
    "heif": "HEIF",
    "jp2": "JPEG2000",
    "jxl": "JXL",
    "raw": None,
}

SUPPORTED_EXTENSIONS = frozenset(PILLOW_FORMATS)

CONTENT_TYPES: Dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "tiff": "image/tiff",
    "avif": "image/avif",
    "heif": "image/heif",
    "jp2": "image/jp2",
    "jxl": "image/jxl",
    "raw": "application/octet-stream",
}


def validate_extension(extension: str, key: str = "format") -> str:
    """Return the lower-cased extension or raise ``InvalidParameter``."""
    normalized = (extension or "").strip().lower().lstrip(".")
    if normalized not in SUPPORTED_EXTENSIONS:
        raise InvalidParameter(
            f"Unsupported image format '{extension}'. "
            f"Supported formats: {', '.join(sorted(SUPPORTED_EXTENSIONS))}",
            key=key,
            value=extension,
        )
    return normalized


def content_type_for(extension: str) -> str:
    return CONTENT_TYPES.get(extension.lower(), "application/octet-stream")
