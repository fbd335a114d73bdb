import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from weather_records.core.config import Settings, settings
from weather_records.core.db import Database
from weather_records.core.logging_config import configure_logging
from weather_records.core.rate_limit import RateLimiter
from weather_records.routers.auth import router as auth_router
from weather_records.routers.export import router as export_router
from weather_records.routers.health import router as health_router
from weather_records.routers.records import router as records_router
from weather_records.routers.weather import router as weather_router
from weather_records.services.providers.openweather_client import OpenWeatherClient

logger = logging.getLogger("weather_records")

API_PREFIX = "/api"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
    "X-Permitted-Cross-Domain-Policies": "none",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    On startup:
    - Creates missing database tables.

    On shutdown:
    - Disposes the database engine and its pooled connections.
    """
    config: Settings = app.state.settings
    database: Database = app.state.database

    await database.create_all()
    logger.info("Database initialized")
    if not config.openweather_api_key:
        logger.warning("OPENWEATHER_API_KEY is not set: forecasts are disabled, geocoding is degraded")
    logger.info("CORS origins: %s", ", ".join(config.allowed_origins))

    yield

    await database.dispose()
    logger.info("Database connections closed")


def _client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))


def register_handlers(app: FastAPI, config: Settings) -> None:
    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        limiter: RateLimiter = request.app.state.rate_limiter
        if request.url.path.startswith(API_PREFIX + "/"):
            key = _client_address(request)
            if not limiter.hit(key):
                logger.warning("Rate limit exceeded for %s", key)
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Too many requests, please try again later."},
                    headers={"Retry-After": str(limiter.retry_after(key))},
                )
        return await call_next(request)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException):
        # Unmatched paths carry the framework default detail
        if exc.status_code == 404 and exc.detail == "Not Found":
            return JSONResponse(status_code=404, content={"detail": "Route not found"})
        return await http_exception_handler(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        content = {"detail": "Internal server error"}
        if not config.is_production:
            content["error"] = str(exc)
        return JSONResponse(status_code=500, content=content)


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function:
    - Configures logging from `LOG_LEVEL`.
    - Builds the shared components (database, rate limiter, weather gateway)
      and attaches them to `app.state`.
    - Registers middleware, error handlers and all API routers under `/api`.

    Returns:
        Configured FastAPI application instance.
    """
    config = config or settings
    configure_logging(config.log_level)

    app = FastAPI(
        title=config.app_name,
        version="1.0.0",
        description="Weather records API: accounts, forecast lookups and saved records",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = config
    app.state.database = Database(config.database_url)
    app.state.rate_limiter = RateLimiter(
        max_requests=config.rate_limit_max_requests,
        window_seconds=config.rate_limit_window_seconds,
    )
    app.state.weather_gateway = OpenWeatherClient.from_settings(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    register_handlers(app, config)

    # Register API routers
    for router in (health_router, auth_router, weather_router, records_router, export_router):
        app.include_router(router, prefix=API_PREFIX)

    return app


# Application entry point
app = create_app()
