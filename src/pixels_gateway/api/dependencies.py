"""Request dependencies."""

from fastapi import Request

from ..core.factories import GatewayContext


async def get_context(request: Request) -> GatewayContext:
    """Get the gateway context from app state."""
    return request.app.state.context
