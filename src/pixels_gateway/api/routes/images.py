"""Image delivery endpoint."""

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from ...core.exceptions import RequestTimeout
from ...core.factories import GatewayContext
from ..dependencies import get_context

router = APIRouter(prefix="/images", tags=["images"])


@router.get("/{storage}/public/{image_path:path}")
async def get_image(
    storage: str,
    image_path: str,
    request: Request,
    context: Annotated[GatewayContext, Depends(get_context)],
) -> Response:
    """
    Serve ``image_path`` from ``storage`` transformed by the query params.

    Empty query values are ignored. The cached variant is returned when it
    exists, otherwise it is computed and stored in the background.
    """
    params = {key: value for key, value in request.query_params.items() if value != ""}
    timeout = context.settings.request_timeout_seconds
    try:
        result = await asyncio.wait_for(
            context.image_service.get_image(image_path, storage, params), timeout
        )
    except asyncio.TimeoutError:
        raise RequestTimeout(f"Request timed out after {timeout:g}s") from None
    return Response(content=result.image, media_type=result.content_type)
