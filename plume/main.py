"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
from typing import Callable, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from plume.api import router as api_router
from plume.api.dependencies import get_auth_dependency
from plume.core.config import settings
from plume.core.logging import configure_logging, get_logger
from plume.services.runtime import CompressionRuntime

configure_logging()
logger = get_logger(__name__)


def create_app(runtime_factory: Optional[Callable[[], CompressionRuntime]] = None) -> FastAPI:
    """Build the application; the runtime lives exactly as long as the lifespan."""

    factory = runtime_factory or CompressionRuntime.build

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        runtime = factory()
        runtime.start()
        app.state.runtime = runtime
        logger.info("application_started", environment=settings.environment)
        try:
            yield
        finally:
            app.state.runtime = None
            await runtime.shutdown()

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router.api_router, prefix=settings.api_v1_prefix)

    @app.get("/healthz", tags=["health"])
    def health_check() -> dict:
        """Simple health probe endpoint."""

        logger.debug("health_check_invoked")
        return {"status": "ok", "environment": settings.environment}

    @app.get("/auth-check", tags=["health"], dependencies=[Depends(get_auth_dependency)])
    def auth_check() -> dict:
        """Endpoint to verify API auth configuration."""

        return {"status": "authorized"}

    return app


app = create_app()


def serve() -> None:
    """Run the service with uvicorn on the configured host and port."""

    uvicorn.run("plume.main:app", host=settings.host, port=settings.port, log_config=None)
