from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from prometheus_fastapi_instrumentator import Instrumentator
from pymongo.errors import ConnectionFailure

from livedesk.config import settings
from livedesk.core.logging_config import setup_structlog
from livedesk.core.tracing import setup_tracing, shutdown_tracing
from livedesk.plugins import init_plugins
from livedesk.plugins.apps.manager import AppManager
from livedesk.plugins.apps.repository import AppRepository
from livedesk.utils.database_setup import ensure_indexes
from livedesk.utils.exceptions import ServiceError
from livedesk.utils.middleware import structured_logging_middleware
from livedesk.utils.responses import failure

EXCLUDED_PLUGINS: list[str] = []

setup_structlog(
    json_logs=settings.json_logs,
    log_level=settings.log_level,
    service_name=settings.service_name,
    environment=settings.environment,
)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Connects MongoDB and builds the App manager on startup; closes the
    connection on shutdown.
    """
    if settings.tracing_enabled:
        setup_tracing(service_name=settings.service_name)
        HTTPXClientInstrumentor().instrument()
    logger.info("Application starting up...", service=settings.service_name)

    instrumentator.expose(app, include_in_schema=False)
    logger.info("Prometheus metrics endpoint exposed at /metrics.")

    try:
        app.state.mongo_client = AsyncIOMotorClient(str(settings.mongodb_url))
        await app.state.mongo_client.admin.command("ping")
        logger.info("Successfully connected to MongoDB.")

        db = app.state.mongo_client[settings.mongodb_database]
        await ensure_indexes(db)
    except ConnectionFailure as e:
        logger.fatal("Failed to connect to MongoDB on startup.", error=str(e))
        raise

    app.state.app_manager = AppManager(AppRepository(db["apps"]))
    logger.info("App manager initialized.")

    yield

    logger.info("Application shutting down...")
    app.state.mongo_client.close()
    logger.info("MongoDB connection closed.")
    shutdown_tracing()


app = FastAPI(
    version="1.0.0",
    title="LiveDesk API",
    description="Apps management REST API and livechat remote methods.",
    lifespan=lifespan,
)

FastAPIInstrumentor.instrument_app(app)

instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/metrics", "/health"],
)
instrumentator.instrument(app, metric_namespace="livedesk", metric_subsystem="api")


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    logger.warning(
        "Service error occurred, returning HTTP response",
        detail=exc.detail,
        status_code=exc.status_code,
        error_type=exc.error_type,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=failure(exc.detail, exc.error_type),
    )


def _validation_message(exc: RequestValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"] if part != "body")
        problems.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "Invalid request: " + "; ".join(problems)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    message = _validation_message(exc)
    logger.warning("Request validation failed", detail=message)
    return JSONResponse(status_code=400, content=failure(message))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("An unhandled exception occurred", error=str(exc))
    correlation_id = getattr(request.state, "correlation_id", "not-available")
    return JSONResponse(
        status_code=500,
        content=failure("An internal server error occurred.", error_id=correlation_id),
    )


app.middleware("http")(structured_logging_middleware)

init_plugins(app, excluded_plugins=EXCLUDED_PLUGINS)


@app.get("/health", tags=["Health Check"], include_in_schema=False)
def health_check():
    return {"status": "ok"}


def run():
    import uvicorn

    uvicorn.run("livedesk.main:app", host="0.0.0.0", port=8000, log_config=None)
