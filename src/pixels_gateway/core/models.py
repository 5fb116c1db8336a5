"""Shared data models for the pixels gateway."""

from typing import Any, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .formats import content_type_for


class TransformSpec(BaseModel):
    """Validated, canonical set of image operations.

    Field declaration order is the canonical order in which pixel
    operations are applied after resizing.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    width: Optional[int] = Field(default=None, ge=0)
    height: Optional[int] = Field(default=None, ge=0)
    quality: Optional[int] = Field(default=None, ge=0, le=100)
    format: Optional[str] = None
    rotate: Optional[float] = Field(default=None, ge=0)
    greyscale: Optional[bool] = None
    blur: Optional[float] = Field(default=None, ge=0)
    flip: Optional[bool] = None
    flop: Optional[bool] = None
    tint: Optional[Tuple[int, int, int]] = None

    def present_fields(self) -> Iterator[Tuple[str, Any]]:
        """Yield ``(name, value)`` for every set field, in canonical order."""
        for name in type(self).model_fields:
            value = getattr(self, name)
            if value is not None:
                yield name, value

    def is_empty(self) -> bool:
        return next(self.present_fields(), None) is None


class StorageLocation(BaseModel):
    """A path inside a named backend."""

    model_config = ConfigDict(frozen=True)

    backend_name: str
    path: str


class ImageResult(BaseModel):
    """Image bytes returned by the orchestrator."""

    image: bytes
    extension: str

    @property
    def content_type(self) -> str:
        return content_type_for(self.extension)


class BatchError(BaseModel):
    """A single failed file within a batch run."""

    model_config = ConfigDict(populate_by_name=True)

    file_path: str = Field(alias="filePath")
    error: str


class BatchProgress(BaseModel):
    """Progress snapshot for a batch token."""

    done: int = 0
    pending: int = 0
    errors: List[BatchError] = Field(default_factory=list)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)
