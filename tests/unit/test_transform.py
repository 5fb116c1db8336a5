"""Unit tests for the transform engine."""

import io

import pytest
from PIL import Image

from pixels_gateway.core.exceptions import TransformError
from pixels_gateway.core.models import TransformSpec
from pixels_gateway.core.transform import (
    Blur,
    Encode,
    Flip,
    Flop,
    Greyscale,
    Resize,
    Rotate,
    Tint,
    TransformEngine,
    build_operations,
)
from pixels_gateway.testing.fakes import create_test_image


def _open(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


class TestBuildOperations:
    """Tests for build_operations."""

    def test_resize_first_encode_last(self):
        spec = TransformSpec(width=10, tint=(1, 2, 3), rotate=90, quality=50)

        operations = build_operations(spec, "png")

        assert operations == [
            Resize(width=10, height=None),
            Rotate(degrees=90),
            Tint(rgb=(1, 2, 3)),
            Encode(extension="png", quality=50),
        ]

    def test_pixel_operations_follow_canonical_order(self):
        spec = TransformSpec(flop=True, blur=1, greyscale=True, flip=True)

        operations = build_operations(spec, "jpg")

        assert operations == [Greyscale(), Blur(sigma=1), Flip(), Flop(), Encode("jpg")]

    def test_false_booleans_and_zero_dimensions_are_skipped(self):
        spec = TransformSpec(width=0, height=0, flip=False, greyscale=False)

        assert build_operations(spec, "png") == [Encode(extension="png")]


class TestTransformEngine:
    """Tests for TransformEngine.apply."""

    def test_resize_keeps_aspect_ratio_with_one_dimension(self):
        engine = TransformEngine()
        source = create_test_image(200, 100)

        result = engine.apply(source, [Resize(width=50), Encode("png")])

        assert _open(result).size == (50, 25)

    def test_resize_covers_both_dimensions(self):
        engine = TransformEngine()
        source = create_test_image(200, 100)

        result = engine.apply(source, [Resize(width=40, height=40), Encode("png")])

        assert _open(result).size == (40, 40)

    def test_rotate_expands_canvas(self):
        engine = TransformEngine()
        source = create_test_image(60, 20)

        result = engine.apply(source, [Rotate(degrees=90), Encode("png")])

        assert _open(result).size == (20, 60)

    def test_greyscale_produces_single_band(self):
        engine = TransformEngine()

        result = engine.apply(create_test_image(20, 20), [Greyscale(), Encode("png")])

        assert _open(result).mode == "L"

    def test_flip_moves_top_quadrant_to_bottom(self):
        """The blue quadrant starts top-left; a vertical flip moves it down."""
        engine = TransformEngine()
        source = create_test_image(20, 20, format="PNG")

        result = _open(engine.apply(source, [Flip(), Encode("png")])).convert("RGB")

        assert result.getpixel((2, 18)) == (0, 0, 255)
        assert result.getpixel((2, 2)) == (255, 0, 0)

    def test_flop_mirrors_horizontally(self):
        engine = TransformEngine()
        source = create_test_image(20, 20, format="PNG")

        result = _open(engine.apply(source, [Flop(), Encode("png")])).convert("RGB")

        assert result.getpixel((18, 2)) == (0, 0, 255)

    def test_tint_colours_white_towards_target(self):
        engine = TransformEngine()
        white = io.BytesIO()
        Image.new("RGB", (4, 4), "white").save(white, format="PNG")

        result = _open(engine.apply(white.getvalue(), [Tint(rgb=(255, 0, 0)), Encode("png")]))

        assert result.convert("RGB").getpixel((0, 0)) == (255, 0, 0)

    def test_tint_keeps_alpha(self):
        engine = TransformEngine()
        source = create_test_image(8, 8, format="PNG", mode="RGBA")

        result = _open(engine.apply(source, [Tint(rgb=(0, 255, 0)), Encode("png")]))

        assert result.mode == "RGBA"

    def test_jpeg_encoding_drops_alpha(self):
        engine = TransformEngine()
        source = create_test_image(8, 8, format="PNG", mode="RGBA")

        result = _open(engine.apply(source, [Encode("jpg", quality=80)]))

        assert result.format == "JPEG"
        assert result.mode == "RGB"

    def test_format_conversion_to_webp(self):
        engine = TransformEngine()

        result = engine.apply(create_test_image(16, 16), [Blur(sigma=1), Encode("webp")])

        assert _open(result).format == "WEBP"

    def test_raw_format_returns_pixel_buffer(self):
        engine = TransformEngine()
        source = create_test_image(4, 3, format="PNG")

        result = engine.apply(source, [Encode("raw")])

        assert len(result) == 4 * 3 * 3

    def test_undecodable_input_is_a_502(self):
        engine = TransformEngine()

        with pytest.raises(TransformError) as exc_info:
            engine.apply(b"not an image", [Encode("png")])

        assert exc_info.value.status_code == 502

    def test_rejected_argument_names_operation(self):
        """An operation rejecting its argument surfaces as a 400 naming it."""
        engine = TransformEngine()

        with pytest.raises(TransformError) as exc_info:
            engine.apply(create_test_image(8, 8), [Rotate(degrees="ninety"), Encode("png")])

        error = exc_info.value
        assert error.status_code == 400
        assert error.operation == "rotate"
        assert error.argument == "ninety"
        assert "Failed to apply operation 'rotate'" in error.message

    @pytest.mark.parametrize(
        "source",
        [create_test_image(16, 16, format="GIF"), create_test_image(16, 16, format="PNG", mode="1")],
        ids=["palette", "bilevel"],
    )
    def test_blur_accepts_palette_and_bilevel_images(self, source):
        """GIF and bilevel sources are widened before filtering."""
        engine = TransformEngine()

        result = engine.apply(source, build_operations(TransformSpec(blur=2.0), "gif"))

        image = _open(result)
        assert image.format == "GIF"
        assert image.size == (16, 16)

    def test_missing_encode_step_rejected(self):
        engine = TransformEngine()

        with pytest.raises(TransformError, match="no encode step"):
            engine.apply(create_test_image(8, 8), [Flip()])
