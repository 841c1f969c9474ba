"""
Main Application Entry Point.

``create_app`` builds the FastAPI application around a ``GatewayService``:
the lifespan starts the gateway (tables, workspace docs, Telegram polling)
and stops it on shutdown. ``gnamiai gateway`` serves it with uvicorn.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gnamiai import __version__
from gnamiai.core.logging_config import get_logger

from .api.v1 import chat, health, pairings, sessions, workspace
from .core import constant
from .exception_handlers import setup_exception_handlers
from .services.gateway import GatewayService, build_gateway

logger = get_logger(__name__)


def create_app(gateway: Optional[GatewayService] = None) -> FastAPI:
    """
    Create the gateway application.

    Args:
        gateway: Pre-built service (tests inject one wired to temporary
            storage). Built from the persisted configuration when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service: GatewayService = app.state.gateway
        logger.info("Starting up GnamiAI gateway...")
        await service.start()
        yield
        logger.info("Shutting down GnamiAI gateway...")
        await service.stop()

    app = FastAPI(
        title=constant.PROJECT_NAME,
        description="Local-first personal assistant gateway: channels, sessions, workspace and webchat.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.gateway = gateway or build_gateway()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(sessions.router, prefix=constant.API_PREFIX, tags=["sessions"])
    app.include_router(workspace.router, prefix=constant.API_PREFIX, tags=["workspace"])
    app.include_router(pairings.router, prefix=f"{constant.API_PREFIX}/pairings", tags=["pairings"])
    app.include_router(chat.router, tags=["chat"])
    return app
