"""Routermon - FastAPI Application."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import DeviceConfig, Settings, get_config, get_devices, settings as default_settings
from .logging_config import configure_logging
from .polling import Aggregator, MockRouterOSClient, PollingScheduler, RouterOSClient
from .polling.mock import generate_mock_devices
from .polling.routeros import DeviceClient
from .routers import routers_router
from .websocket import ConnectionManager, websocket_endpoint

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    client: DeviceClient | None = None,
    devices: list[DeviceConfig] | None = None,
) -> FastAPI:
    """Build the application. ``client`` and ``devices`` override what settings would load."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan - startup and shutdown events."""
        # Startup
        config = get_config(settings)
        fleet = devices
        if fleet is None:
            fleet = get_devices(settings, default_port=config.pool.default_port)
        adapter = client
        if adapter is None:
            if settings.use_mock or (settings.dev_mode and not fleet):
                logger.info("Using mock RouterOS client (no real devices)")
                adapter = MockRouterOSClient()
                if not fleet:
                    fleet = generate_mock_devices()
            else:
                adapter = RouterOSClient()

        aggregator = Aggregator.from_config(fleet, config, adapter)
        ws_manager = ConnectionManager()
        scheduler = PollingScheduler(aggregator, config.polling, ws_manager)

        app.state.aggregator = aggregator
        app.state.ws_manager = ws_manager
        app.state.scheduler = scheduler
        scheduler.start()
        logger.info("Routermon ready: %d routers", len(fleet))

        yield

        # Shutdown
        logger.info("Shutting down, closing connections...")
        await scheduler.stop()
        await ws_manager.close_all()
        await aggregator.shutdown()

    app = FastAPI(
        title="Routermon",
        description="RouterOS fleet monitoring API",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS configuration
    origins = ["*"] if settings.dev_mode else []
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(routers_router, prefix="/api", tags=["routers"])

    # WebSocket endpoint
    app.websocket("/ws/updates")(websocket_endpoint)
    return app


app = create_app()


def run() -> None:
    """Console entry point."""
    configure_logging(default_settings.log_level)
    uvicorn.run(app, host=default_settings.host, port=default_settings.port)


if __name__ == "__main__":
    run()
