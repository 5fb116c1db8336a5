"""Tests for core data models."""

import pytest
from pydantic import ValidationError

from pixels_gateway.core.models import (
    BatchError,
    BatchProgress,
    ImageResult,
    StorageLocation,
    TransformSpec,
)


class TestTransformSpec:
    """Tests for TransformSpec."""

    def test_present_fields_in_canonical_order(self):
        spec = TransformSpec(tint=(1, 2, 3), width=10, flip=True, quality=5)

        assert [name for name, _ in spec.present_fields()] == ["width", "quality", "flip", "tint"]

    def test_is_empty(self):
        assert TransformSpec().is_empty()
        assert not TransformSpec(flip=False).is_empty()

    def test_immutable(self):
        spec = TransformSpec(width=10)

        with pytest.raises(ValidationError):
            spec.width = 20

    def test_unknown_fields_forbidden(self):
        with pytest.raises(ValidationError):
            TransformSpec(size=10)

    def test_equal_specs_hash_equal(self):
        assert hash(TransformSpec(width=1, blur=2.0)) == hash(TransformSpec(blur=2.0, width=1))


class TestBatchProgress:
    """Tests for BatchProgress and BatchError."""

    def test_defaults(self):
        progress = BatchProgress()

        assert (progress.done, progress.pending, progress.errors) == (0, 0, [])

    def test_wire_format_uses_camel_case(self):
        progress = BatchProgress(
            done=1, pending=0, errors=[BatchError(file_path="a.jpg", error="boom")]
        )

        assert progress.to_wire() == {
            "done": 1,
            "pending": 0,
            "errors": [{"filePath": "a.jpg", "error": "boom"}],
        }

    def test_parses_wire_format(self):
        progress = BatchProgress.model_validate(
            {"done": 2, "pending": 1, "errors": [{"filePath": "b.jpg", "error": "x"}]}
        )

        assert progress.errors[0].file_path == "b.jpg"


class TestImageResult:
    """Tests for ImageResult."""

    @pytest.mark.parametrize(
        "extension, content_type",
        [("jpg", "image/jpeg"), ("webp", "image/webp"), ("raw", "application/octet-stream")],
    )
    def test_content_type(self, extension, content_type):
        assert ImageResult(image=b"x", extension=extension).content_type == content_type


def test_storage_location_is_frozen():
    location = StorageLocation(backend_name="media", path="a/b.jpg")

    with pytest.raises(ValidationError):
        location.path = "c.jpg"
