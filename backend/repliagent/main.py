from fastapi import FastAPI, Response
from contextlib import asynccontextmanager
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from typing import Optional
import logging

from repliagent.config import Settings, settings as default_settings
from repliagent.api.routes import actions, info
from repliagent.errors import ConfError
from repliagent.services.actions import Add, Init
from repliagent.services.gateway import CommandGateway
from repliagent.services.node_info import MongoInfo

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if default_settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def cluster_address(settings: Settings) -> str:
    """Address other members use to reach the node, required to initialise a replica set"""
    if not settings.cluster_address:
        raise ConfError("the node cluster address is missing from both configuration and environment")
    return settings.cluster_address


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[CommandGateway] = None
) -> FastAPI:
    """
    Create the agent application

    Args:
        settings: Agent settings (defaults to the environment)
        gateway: Gateway to use instead of connecting to the configured node

    Returns:
        FastAPI: The configured application
    """
    settings = settings or default_settings
    host = cluster_address(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle application startup and shutdown"""
        logger.info(f"Starting {settings.app_name} v{settings.app_version}")
        logger.info(f"Managing MongoDB node at {settings.node_address}")

        # Startup: one client for the node, shared by every operation
        owned = gateway is None
        node_gateway = CommandGateway.from_settings(settings) if owned else gateway

        app.state.mongo_info = MongoInfo.from_settings(node_gateway, settings)
        app.state.actions = {
            handler.name: handler
            for handler in (Add(node_gateway), Init(node_gateway, host))
        }
        logger.info(f"Registered actions: {', '.join(sorted(app.state.actions))}")

        yield

        # Shutdown: Cleanup resources
        logger.info(f"Shutting down {settings.app_name}")
        if owned:
            node_gateway.close()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Replicante agent for MongoDB replica set members",
        lifespan=lifespan
    )

    @app.get("/")
    async def root():
        """Root endpoint with agent information"""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "node_address": settings.node_address,
            "docs": "/docs",
            "status": "running"
        }

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        return {"status": "healthy"}

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics"""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(info.router, prefix="/api/info", tags=["Node Information"])
    app.include_router(actions.router, prefix="/api/actions", tags=["Actions"])
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        create_app(),
        host=default_settings.host,
        port=default_settings.port
    )
