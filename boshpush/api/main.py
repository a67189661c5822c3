"""
BOSH Push Bridge - FastAPI Application

Builds the control-plane app around one registry, one dispatch engine and
one stream event pump. The pump is exposed as ``app.state.pump`` so an
in-process stream server can publish events to it.

Usage:
    uvicorn boshpush.api.main:create_app --factory --host 0.0.0.0 --port 2020

    Or via the CLI:
    boshpush serve
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

# Load .env file before anything else
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request

from boshpush import __version__
from boshpush.api.routes import router
from boshpush.config_models import BridgeConfig, load_config
from boshpush.dispatch import DispatchEngine
from boshpush.logging_config import setup_logging
from boshpush.push.channels import build_push_channel
from boshpush.push.registry import SessionRegistry
from boshpush.stream.pump import StreamEventPump


logger = logging.getLogger(__name__)


def build_engine(config: BridgeConfig) -> DispatchEngine:
    """Create a dispatch engine with a fresh registry and the configured channel."""
    return DispatchEngine(
        registry=SessionRegistry(),
        channel=build_push_channel(config.push),
        max_payload_bytes=config.payload.max_bytes,
        sound=config.payload.sound,
    )


def create_app(
    config: BridgeConfig | None = None,
    engine: DispatchEngine | None = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Create the bridge application.

    Args:
        config: Bridge configuration, loaded from args/bridge.yaml if omitted
        engine: Pre-built engine (tests inject one with a fake channel)
        configure_logging: Install the structlog handler on the root logger
    """
    if config is None:
        config = load_config()

    if configure_logging:
        setup_logging(level=config.logging.level, json_output=config.logging.json_output)

    if engine is None:
        engine = build_engine(config)

    pump = StreamEventPump(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        logger.info(f"Starting BOSH push bridge (channel={engine.channel.name})")
        app.state.started_at = datetime.now()
        await pump.start()

        yield

        logger.info("Shutting down BOSH push bridge...")
        await pump.stop()
        await engine.channel.close()

    app = FastAPI(
        title="BOSH Push Bridge",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.engine = engine
    app.state.pump = pump

    @app.middleware("http")
    async def collapse_trailing_slashes(request: Request, call_next):
        """Route /register/// like /register/."""
        path = request.scope["path"]
        if path.endswith("//"):
            request.scope["path"] = path.rstrip("/") + "/"
        return await call_next(request)

    app.include_router(router)

    return app
