"""Liveness and readiness endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from ... import __version__
from ...core.exceptions import BackendError
from ...core.factories import GatewayContext
from ..dependencies import get_context
from ..schemas import MessageResponse

router = APIRouter(tags=["health"])


@router.get("/", response_model=MessageResponse)
@router.get("/ping", response_model=MessageResponse)
async def ping() -> MessageResponse:
    return MessageResponse(message="pixels-gateway is running", version=__version__)


@router.get("/health", response_model=MessageResponse)
async def health(
    context: Annotated[GatewayContext, Depends(get_context)],
) -> MessageResponse:
    """Liveness plus a round trip to the progress store."""
    if not await context.progress_store.ping():
        raise BackendError("Progress store is unreachable")
    return MessageResponse(message="pixels-gateway is running", version=__version__)
