"""Deterministic cache key derivation.

A cache key is a pure function of the original path and the validated
``TransformSpec``: tokens are built per field and sorted, so the order in
which parameters arrived never changes the resulting name.
"""

import posixpath
from typing import Any, Dict, Tuple

from .exceptions import InvalidParameter
from .formats import validate_extension
from .models import TransformSpec

SHORT_CODES: Dict[str, str] = {
    "width": "w",
    "height": "h",
    "quality": "q",
    "blur": "b",
    "rotate": "r",
    "greyscale": "g",
    "flip": "flip",
    "flop": "flop",
    "tint": "t",
}


def canonical_value(value: Any) -> str:
    """Render a validated field value the same way every time."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, tuple):
        return "".join(f"{channel:02x}" for channel in value)
    return str(value)


def derive_name(base_name: str, extension: str, spec: TransformSpec) -> str:
    """
    Build the cache name for ``base_name`` under ``spec``.

    Every present field except ``format`` contributes a ``code-value``
    token. Tokens are sorted lexicographically before joining.

    Example:
        >>> derive_name("p1", "webp", TransformSpec(width=600, height=800))
        'p1-h-800-w-600.webp'
    """
    tokens = sorted(
        f"{SHORT_CODES[name]}-{canonical_value(value)}"
        for name, value in spec.present_fields()
        if name != "format"
    )
    if not tokens:
        return f"{base_name}.{extension}"
    return f"{base_name}-{'-'.join(tokens)}.{extension}"


def split_image_path(path: str) -> Tuple[str, str, str]:
    """
    Split an image path into ``(directory, base_name, extension)``.

    Raises:
        InvalidParameter: When the last path segment has no extension.
    """
    normalized = path.strip().lstrip("/")
    directory, filename = posixpath.split(normalized)
    base_name, dot_extension = posixpath.splitext(filename)
    if not base_name or not dot_extension or dot_extension == ".":
        raise InvalidParameter("File extension is missing", key="path", value=path)
    return directory, base_name, dot_extension[1:]


def output_extension(original_extension: str, spec: TransformSpec) -> str:
    """Requested format when present, else the validated original extension."""
    original = validate_extension(original_extension, key="path")
    return spec.format or original


def cache_key_for(path: str, spec: TransformSpec) -> Tuple[str, str]:
    """
    Derive the storage key for the transformed variant of ``path``.

    The derived name lives next to the original, in the same directory.

    Returns:
        ``(cache_key, output_extension)``
    """
    directory, base_name, extension = split_image_path(path)
    target_extension = output_extension(extension, spec)
    name = derive_name(base_name, target_extension, spec)
    return posixpath.join(directory, name), target_extension
