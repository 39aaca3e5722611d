"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pothole_relayer import __version__
from pothole_relayer.chain.gateway import ChainGateway
from pothole_relayer.config import Settings, get_cors_origins, get_settings
from pothole_relayer.relay.service import RelayerService

logger = logging.getLogger(__name__)


def build_relayer_service(settings: Settings) -> RelayerService:
    """Wire gateway and service from settings.

    Raises:
        ConfigurationError: If required settings are missing
    """
    config = settings.to_relayer_config()
    gateway = ChainGateway(config)
    logger.info(
        f"Relayer {gateway.get_relayer_address()} on chain {config.chain_id}, "
        f"forwarder {config.forwarder_address}"
    )
    return RelayerService(gateway, config, lock_timeout=settings.signer_lock_timeout)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    owns_service = app.state.relayer_service is None
    if owns_service:
        app.state.relayer_service = build_relayer_service(app.state.settings)
    yield
    # Shutdown
    if owns_service:
        await app.state.relayer_service.gateway.close()


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[RelayerService] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use (cached environment settings by default)
        service: Pre-built relayer service; built at startup when omitted
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Pothole Relayer",
        description="Gasless meta-transaction relayer for pothole reports",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.relayer_service = service

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(settings),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        try:
            response = await call_next(request)
        except Exception:
            logger.error(f"{request.method} {request.url.path} -> 500")
            raise
        logger.info(f"{request.method} {request.url.path} -> {response.status_code}")
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Malformed body on {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid request format"},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Server error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error"},
        )

    # Register routes
    from pothole_relayer.api.routes import health, relay

    app.include_router(health.router, tags=["Health"])
    app.include_router(relay.router, tags=["Relay"])

    return app
