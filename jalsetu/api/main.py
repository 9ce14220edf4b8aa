"""FastAPI application initialization."""

import logging
import random
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..core.config import Settings, get_settings
from ..core.exceptions import JalSetuError, create_error_response, get_http_status_code
from ..core.logging import setup_logging
from ..core.monitoring import MonitoringMiddleware, get_health_status, get_metrics
from ..database.connection import MongoDBConnection
from ..database.operations import FarmRepository
from ..graph.workflow import FallbackOrchestrator
from ..knowledge import KnowledgeBase
from ..providers.registry import ProviderRegistry
from ..services.advice import AdviceGenerator
from ..services.dashboard import DashboardService
from ..services.sensors import SensorDataGenerator
from ..services.weather import WeatherService
from .models.response import ErrorResponse, HealthResponse
from .routes import chat_router, farm_router

logger = logging.getLogger(__name__)

MESSAGE_REQUIRED = "Message is required"


def _is_missing_message(exc: RequestValidationError) -> bool:
    """True when the body or its ``message`` field is absent."""
    for error in exc.errors():
        loc = tuple(error.get("loc", ()))
        if error.get("type") == "missing" and loc in (("body",), ("body", "message")):
            return True
    return False


def _validation_detail(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        parts.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
    return "; ".join(parts)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting up JalSetu API...")

    connection: Optional[MongoDBConnection] = app.state.connection
    if connection is not None:
        try:
            await run_in_threadpool(connection.connect)
        except JalSetuError as e:
            # Chat keeps working without a database; farm endpoints will return 503.
            logger.error(f"MongoDB unavailable at startup: {e}")

    yield

    logger.info("Shutting down JalSetu API...")
    await app.state.registry.aclose()
    await app.state.weather.aclose()
    if connection is not None:
        connection.disconnect()


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[ProviderRegistry] = None,
    repository: Optional[FarmRepository] = None,
    weather: Optional[WeatherService] = None,
    rng: Optional[random.Random] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """Build the application and everything it depends on.

    Provider clients, the knowledge base and the repository are created once
    here and shared by all requests. Tests pass their own doubles.
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings.log_level, settings.enable_file_logging)

    registry = registry or ProviderRegistry(settings)
    knowledge_base = KnowledgeBase()

    connection = None
    if repository is None:
        connection = MongoDBConnection(settings)
        repository = FarmRepository(connection=connection)

    weather = weather or WeatherService(
        settings.weather_api_key,
        location=settings.weather_location,
        timeout=settings.provider_timeout_seconds,
    )
    gemini = registry.get("gemini")
    dashboard = DashboardService(
        repository=repository,
        weather=weather,
        sensors=SensorDataGenerator(gemini, rng=rng),
        advice=AdviceGenerator(gemini),
    )

    app = FastAPI(
        title="JalSetu API",
        description="Farm water-management assistant with LLM chat and a local knowledge-base fallback",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.registry = registry
    app.state.knowledge_base = knowledge_base
    app.state.orchestrators = {
        name: FallbackOrchestrator(registry.get(name), knowledge_base) for name in registry.names
    }
    app.state.connection = connection
    app.state.repository = repository
    app.state.weather = weather
    app.state.dashboard = dashboard
    app.state.rng = rng

    # CORS is outermost; preflight requests never reach monitoring.
    app.add_middleware(MonitoringMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(JalSetuError)
    async def jalsetu_exception_handler(request: Request, exc: JalSetuError):
        """Handle application exceptions globally."""
        status_code = get_http_status_code(exc)
        if status_code >= 500:
            logger.error(f"Application error in {request.url.path}: {exc}")
        else:
            logger.info(f"Request rejected in {request.url.path}: {exc}")

        return JSONResponse(status_code=status_code, content=create_error_response(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report malformed request bodies as 400."""
        if _is_missing_message(exc):
            body = ErrorResponse(error=MESSAGE_REQUIRED)
        else:
            body = ErrorResponse(error="Invalid request", message=_validation_detail(exc))
        logger.info(f"Invalid request to {request.url.path}: {body.error}")
        return JSONResponse(status_code=400, content=body.to_body())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions globally."""
        logger.warning(f"HTTP exception in {request.url.path}: {exc.detail}")
        try:
            error = HTTPStatus(exc.status_code).phrase
        except ValueError:
            error = "Error"
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=error, message=str(exc.detail)).to_body(),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all unhandled exceptions."""
        logger.error(f"Unhandled exception in {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal server error", message=str(exc)).to_body(),
        )

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check from request metrics and a database ping."""
        health_data = get_health_status()
        db_healthy = await run_in_threadpool(request.app.state.repository.health_check)

        issues = list(health_data["issues"])
        if not db_healthy:
            issues.append("Database connection failed")

        if health_data["status"] == "unhealthy":
            status = "unhealthy"
        elif health_data["status"] == "degraded" or not db_healthy:
            status = "degraded"
        else:
            status = "healthy"

        body = HealthResponse(status=status, version=__version__, database_healthy=db_healthy, issues=issues)
        if status == "unhealthy":
            return JSONResponse(status_code=503, content=body.model_dump(mode="json"))
        return body

    @app.get("/metrics")
    async def metrics_endpoint():
        """Get application metrics."""
        return get_metrics()

    @app.get("/")
    async def root():
        return {
            "message": "JalSetu API",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
            "health": "/health",
        }

    app.include_router(chat_router, prefix="/api", tags=["chat"])
    app.include_router(farm_router, prefix="/api", tags=["farm"])

    return app
