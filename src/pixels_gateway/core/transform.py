"""Transform engine: ordered Pillow operations over image bytes."""

import io
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from .exceptions import TransformError
from .formats import PILLOW_FORMATS
from .models import TransformSpec


@dataclass(frozen=True)
class Resize:
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class Rotate:
    degrees: float


@dataclass(frozen=True)
class Greyscale:
    pass


@dataclass(frozen=True)
class Blur:
    sigma: float


@dataclass(frozen=True)
class Flip:
    pass


@dataclass(frozen=True)
class Flop:
    pass


@dataclass(frozen=True)
class Tint:
    rgb: Tuple[int, int, int]


@dataclass(frozen=True)
class Encode:
    extension: str
    quality: Optional[int] = None


Operation = Union[Resize, Rotate, Greyscale, Blur, Flip, Flop, Tint, Encode]


def build_operations(spec: TransformSpec, extension: str) -> List[Operation]:
    """
    Turn a spec into the ordered pipeline.

    Resize comes first (a zero dimension counts as unset), then the pixel
    operations in canonical field order, then encoding.
    """
    operations: List[Operation] = []

    width = spec.width or None
    height = spec.height or None
    if width or height:
        operations.append(Resize(width=width, height=height))

    for name, value in spec.present_fields():
        if name == "rotate":
            operations.append(Rotate(degrees=value))
        elif name == "greyscale" and value:
            operations.append(Greyscale())
        elif name == "blur":
            operations.append(Blur(sigma=value))
        elif name == "flip" and value:
            operations.append(Flip())
        elif name == "flop" and value:
            operations.append(Flop())
        elif name == "tint":
            operations.append(Tint(rgb=value))

    operations.append(Encode(extension=extension, quality=spec.quality))
    return operations


def _describe(operation: Operation) -> Tuple[str, object]:
    if isinstance(operation, Resize):
        return "resize", (operation.width, operation.height)
    if isinstance(operation, Rotate):
        return "rotate", operation.degrees
    if isinstance(operation, Blur):
        return "blur", operation.sigma
    if isinstance(operation, Tint):
        return "tint", operation.rgb
    if isinstance(operation, Encode):
        return "format", operation.extension
    return type(operation).__name__.lower(), None


def _resize(image: Image.Image, op: Resize) -> Image.Image:
    if op.width and op.height:
        return ImageOps.fit(image, (op.width, op.height), method=Image.Resampling.LANCZOS)
    if op.width:
        height = max(1, round(image.height * op.width / image.width))
        return image.resize((op.width, height), Image.Resampling.LANCZOS)
    width = max(1, round(image.width * op.height / image.height))
    return image.resize((width, op.height), Image.Resampling.LANCZOS)


def _filterable(image: Image.Image) -> Image.Image:
    # convolution filters need full colour or greyscale pixels
    if image.mode == "P":
        return image.convert("RGBA" if "transparency" in image.info else "RGB")
    if image.mode == "1":
        return image.convert("L")
    return image


def _tint(image: Image.Image, op: Tint) -> Image.Image:
    alpha = image.getchannel("A") if image.mode in ("RGBA", "LA") else None
    tinted = ImageOps.colorize(image.convert("L"), black=(0, 0, 0), white=op.rgb)
    if alpha is not None:
        tinted.putalpha(alpha)
    return tinted


def _encode(image: Image.Image, op: Encode) -> bytes:
    pillow_format = PILLOW_FORMATS[op.extension]
    if pillow_format is None:
        return image.tobytes()

    if pillow_format == "JPEG" and image.mode not in ("RGB", "L", "CMYK"):
        image = image.convert("RGB")

    options = {}
    if op.quality is not None:
        options["quality"] = op.quality

    output = io.BytesIO()
    image.save(output, format=pillow_format, **options)
    return output.getvalue()


class TransformEngine:
    """Applies operations through Pillow. Synchronous and CPU bound."""

    def apply(self, image_bytes: bytes, operations: List[Operation]) -> bytes:
        """
        Decode, run every operation in order, and return the encoded bytes.

        Raises:
            TransformError: 502 when the input cannot be decoded or the
                encoder is unavailable, 400 when an operation rejects its
                argument.
        """
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombError) as exc:
            raise TransformError(
                f"Failed to decode source image: {exc}", status_code=502
            ) from exc

        encoded: Optional[bytes] = None
        for operation in operations:
            name, argument = _describe(operation)
            try:
                if isinstance(operation, Encode):
                    encoded = _encode(image, operation)
                else:
                    image = self._apply_pixel_operation(image, operation)
            except (KeyError, OSError) as exc:
                # unknown save format or encoder missing from this Pillow build
                raise TransformError(
                    f"Failed to apply operation '{name}' with argument "
                    f"{argument!r}: encoder unavailable ({exc})",
                    operation=name,
                    argument=argument,
                    status_code=502,
                ) from exc
            except (ValueError, TypeError) as exc:
                raise TransformError(
                    f"Failed to apply operation '{name}' with argument "
                    f"{argument!r}: {exc}",
                    operation=name,
                    argument=argument,
                ) from exc

        if encoded is None:
            raise TransformError(
                "Operation pipeline has no encode step", operation="format"
            )
        return encoded

    def _apply_pixel_operation(
        self, image: Image.Image, operation: Operation
    ) -> Image.Image:
        if isinstance(operation, Resize):
            return _resize(image, operation)
        elif isinstance(operation, Rotate):
            return image.rotate(-operation.degrees, expand=True)
        elif isinstance(operation, Greyscale):
            return image.convert("LA" if "A" in image.getbands() else "L")
        elif isinstance(operation, Blur):
            return _filterable(image).filter(ImageFilter.GaussianBlur(radius=operation.sigma))
        elif isinstance(operation, Flip):
            return ImageOps.flip(image)
        elif isinstance(operation, Flop):
            return ImageOps.mirror(image)
        elif isinstance(operation, Tint):
            return _tint(image, operation)
        raise TypeError(f"Unknown operation: {operation!r}")
