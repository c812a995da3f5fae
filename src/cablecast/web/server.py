"""
Web server for CableCast.

Provides the FastAPI application serving the channel and schedule API.
The horizon manager runs for the lifetime of the application.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from ..infra.logging import configure_logging, get_logger
from ..infra.settings import Settings
from ..runtime.channel_service import ChannelService
from ..runtime.horizon_manager import HorizonManager
from ..runtime.wiring import build_runtime
from .api import channels

logger = get_logger(__name__)


def create_app(
    service: ChannelService | None = None,
    horizon_manager: HorizonManager | None = None,
    *,
    settings: Settings | None = None,
) -> FastAPI:
    """Create the application.

    Without a service, the full runtime is wired from settings. The horizon
    manager, when present, is started on startup and stopped on shutdown.
    """
    if service is None:
        runtime = build_runtime(settings)
        service = runtime.service
        horizon_manager = horizon_manager or runtime.horizon_manager

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if horizon_manager is not None:
            horizon_manager.start()
        try:
            yield
        finally:
            if horizon_manager is not None:
                horizon_manager.stop()
            service.persist()

    app = FastAPI(title="CableCast", lifespan=lifespan)
    app.state.service = service
    app.state.horizon_manager = horizon_manager
    app.include_router(channels.router)

    @app.get("/")
    async def root():
        return {"service": "cablecast", "channels": len(service.list_channels())}

    return app


def run_server(host: str = "0.0.0.0", port: int = 8000, settings: Settings | None = None):
    """Serve the API with uvicorn until interrupted."""
    app = create_app(settings=settings)
    logger.info("server_starting", host=host, port=port)
    uvicorn.run(app, host=host, port=port)


def main() -> None:
    configure_logging()
    run_server()


if __name__ == "__main__":
    main()
