"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .. import __version__
from ..core.config import Settings, get_settings
from ..core.factories import GatewayContext, GatewayContextFactory
from ..core.logging_config import get_logger
from .errors import setup_exception_handlers
from .routes import api_router

logger = get_logger("api")


def create_app(
    context: Optional[GatewayContext] = None, settings: Optional[Settings] = None
) -> FastAPI:
    """
    Application factory.

    A prebuilt ``context`` is used as is (tests pass one wired with fakes);
    otherwise one is created from ``settings`` at startup.
    """
    settings = settings or (context.settings if context else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.app_name} {__version__}...")
        gateway = context or GatewayContextFactory.create_context(settings)
        app.state.context = gateway
        await gateway.startup()
        logger.info(f"Storage backends: {', '.join(gateway.registry.names()) or '-'}")

        yield

        logger.info("Shutting down...")
        await gateway.shutdown()
        logger.info("Shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="On-demand image transformation gateway",
        lifespan=lifespan,
    )
    if context is not None:
        app.state.context = context

    setup_exception_handlers(app)
    app.include_router(api_router)
    return app
