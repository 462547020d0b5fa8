"""
Web Application Entry Point
============================

FastAPI application exposing the webhook trigger and status API, and
running the orchestrator for the lifetime of the server.

Author: PulseQueue Project
License: MIT
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .middleware import TokenAuthMiddleware
from .routes import api_router, set_orchestrator
from ..config.config_loader import load_config
from ..core.orchestrator import Orchestrator
from ..utils.logger import get_logger, setup_logging_from_config

logger = get_logger(__name__)


def create_app(orchestrator: Optional[Orchestrator] = None, start: bool = True) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        orchestrator: Orchestrator to serve (loaded from CONFIG_PATH if None)
        start: Start the pulse driver on startup and stop it on shutdown
    """
    if orchestrator is None:
        config = load_config()
        setup_logging_from_config(config.app)
        orchestrator = Orchestrator(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("PulseQueue web application starting...")
        if orchestrator.registry is None:
            orchestrator.initialize()

        set_orchestrator(orchestrator)
        if start:
            orchestrator.start()

        try:
            yield
        finally:
            logger.info("PulseQueue web application shutting down...")
            if start:
                orchestrator.stop()
            set_orchestrator(None)

    app = FastAPI(
        title="PulseQueue",
        description="Pulse-driven scheduler and managed queue bootstrap",
        version="0.1.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan
    )

    secret = orchestrator.config.security.webhook_secret
    if secret:
        app.add_middleware(TokenAuthMiddleware, secret=secret)
    else:
        logger.warning("No webhook secret configured, API is unauthenticated")

    app.include_router(api_router, prefix="/api", tags=["API"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint for container orchestration."""
        return {"status": "healthy", "service": "pulsequeue"}

    return app


if __name__ == "__main__":
    import uvicorn

    config = load_config()
    setup_logging_from_config(config.app)
    uvicorn.run(
        create_app(Orchestrator(config)),
        host=config.app.host,
        port=config.app.port,
        log_level="info"
    )
