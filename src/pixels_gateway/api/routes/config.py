"""Storage configuration checks."""

from typing import Annotated

from fastapi import APIRouter, Depends

from ...core.factories import GatewayContext
from ..dependencies import get_context
from ..schemas import MessageResponse

router = APIRouter(prefix="/config", tags=["config"])


@router.get(
    "/storage/validate/{storage_name}",
    response_model=MessageResponse,
    response_model_exclude_none=True,
)
async def validate_storage(
    storage_name: str,
    context: Annotated[GatewayContext, Depends(get_context)],
) -> MessageResponse:
    """Check that ``storage_name`` accepts its configured credentials."""
    result = await context.storage_config_service.check_storage_credentials(storage_name)
    return MessageResponse(**result)
