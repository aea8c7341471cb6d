"""
Market Data Hub - Main Application Entry Point
"""
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from marketdata.config import Settings, settings as default_settings
from marketdata.api.v1.router import api_router
from marketdata.data_providers.provider_init import MarketDataServices, build_services
from marketdata.utils.exceptions import MarketDataException, error_body


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as {"error": message}."""

    @app.exception_handler(MarketDataException)
    async def market_data_exception_handler(request: Request, exc: MarketDataException):
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(status_code=400, content=error_body(detail))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content=error_body("Internal server error"))


def create_application(
    settings: Optional[Settings] = None,
    services: Optional[MarketDataServices] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings (defaults to the global instance)
        services: Prebuilt service graph; built from settings when omitted
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events handler."""
        logger.info(f"Starting {settings.APP_NAME}...")
        app.state.services = services or build_services(settings)
        await app.state.services.startup()
        logger.info(f"{settings.APP_NAME} started successfully")

        yield

        logger.info(f"Shutting down {settings.APP_NAME}...")
        await app.state.services.shutdown()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Multi-provider stock and mutual fund data with caching and rate limiting",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for load balancers."""
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": "1.0.0"
        }

    return app


def run() -> None:
    """Run the API with uvicorn."""
    import uvicorn
    from marketdata.utils.logger import configure_logging

    configure_logging()
    uvicorn.run(
        "marketdata.main:app",
        host=default_settings.BACKEND_HOST,
        port=default_settings.BACKEND_PORT,
        reload=default_settings.DEBUG,
    )


# Create the application instance
app = create_application()


if __name__ == "__main__":
    run()
