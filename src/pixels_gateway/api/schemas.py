"""Request and response bodies of the HTTP API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class BatchDirectoryRequest(_CamelBody):
    storage_name: str = Field(alias="storageName", min_length=1)
    path: str = ""
    transformations: Dict[str, Any] = Field(default_factory=dict)


class BatchListRequest(_CamelBody):
    storage_name: str = Field(alias="storageName", min_length=1)
    file_paths: List[str] = Field(alias="filePaths", default_factory=list)
    transformations: Dict[str, Any] = Field(default_factory=dict)


class BatchSubmitted(BaseModel):
    success: bool = True
    message: str
    token: str


class ProgressResponse(BaseModel):
    success: bool = True
    progress: Dict[str, Any]


class MessageResponse(BaseModel):
    success: bool = True
    message: str
    version: Optional[str] = None
