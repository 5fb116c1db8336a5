"""Batch submission and progress endpoints."""

import secrets
from typing import Annotated

from fastapi import APIRouter, Depends

from ...core.factories import GatewayContext
from ..dependencies import get_context
from ..schemas import BatchDirectoryRequest, BatchListRequest, BatchSubmitted, ProgressResponse

router = APIRouter(prefix="/batch", tags=["batch"])


def new_token() -> str:
    return secrets.token_urlsafe(16)


@router.post("/process/directory", response_model=BatchSubmitted)
async def process_directory(
    body: BatchDirectoryRequest,
    context: Annotated[GatewayContext, Depends(get_context)],
) -> BatchSubmitted:
    token = new_token()
    await context.batch_runner.submit_directory(
        token, body.storage_name, body.path, body.transformations
    )
    return BatchSubmitted(message="Batch processing initiated successfully.", token=token)


@router.post("/process/list", response_model=BatchSubmitted)
async def process_list(
    body: BatchListRequest,
    context: Annotated[GatewayContext, Depends(get_context)],
) -> BatchSubmitted:
    token = new_token()
    await context.batch_runner.submit_list(
        token, body.storage_name, body.file_paths, body.transformations
    )
    return BatchSubmitted(
        message="Batch processing from list initiated successfully.", token=token
    )


@router.get("/progress/{token}", response_model=ProgressResponse)
async def get_progress(
    token: str,
    context: Annotated[GatewayContext, Depends(get_context)],
) -> ProgressResponse:
    progress = await context.batch_runner.get_progress(token)
    return ProgressResponse(progress=progress.to_wire())
