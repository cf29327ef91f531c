"""
FastAPI application for the daily action engine.

Routers cover the on-demand, single-user paths (dashboard view, completion,
replacement, preferences, progress). The nightly batch and decay sweep run in
the Celery worker against the same services.
"""
from contextlib import asynccontextmanager
import logging
import time
import uuid

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.config import settings
from core.database import check_db_connection, engine, get_session_factory
from core.exceptions import APIException, api_exception_handler
from core.logging import bind_log_context, setup_logging
from routers import actions, progress

setup_logging()
logger = logging.getLogger(__name__)


def _strip_request_bodies(event, hint):
    """Action text and survey answers are personal; never ship request bodies."""
    request = event.get("request")
    if request:
        request.pop("data", None)
        request.pop("cookies", None)
    return event


if settings.SENTRY_DSN:
    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                SqlalchemyIntegration(),
            ],
            send_default_pii=False,
            before_send=_strip_request_bodies,
        )
        logger.info(f"Sentry initialized for environment: {settings.ENVIRONMENT}")
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Pooled asyncpg connections belong to this loop; close them with it.
    await engine.dispose()


app = FastAPI(
    title="Daily Action Engine API",
    description="Personalized daily relationship actions, health score and badge progression",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

if settings.DEBUG:
    allowed_origins = ["*"]
elif settings.CORS_ORIGINS:
    allowed_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",")]
else:
    allowed_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.add_exception_handler(APIException, api_exception_handler)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag every log line of a request with its id; log status and timing once."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    start_time = time.perf_counter()

    with bind_log_context(request_id=request_id):
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "extra_fields": {
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "process_time_ms": elapsed_ms,
                }
            },
        )

    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra={"extra_fields": {"method": request.method, "path": request.url.path}},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "error_code": "INTERNAL_ERROR"},
    )


@app.get("/health")
async def health(session_factory: async_sessionmaker = Depends(get_session_factory)):
    """200 when the database answers, 503 otherwise."""
    if not await check_db_connection(session_factory):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unavailable"},
        )
    return {"status": "healthy", "database": "ok", "environment": settings.ENVIRONMENT}


@app.get("/ping")
async def ping():
    """Liveness only; touches nothing."""
    return {"pong": True}


app.include_router(actions.router)
app.include_router(progress.router)
