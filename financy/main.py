"""Main FastAPI application entry point."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import sentry_sdk
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from financy.config import settings
from financy.database import build_engine, build_sessionmaker, close_db, init_db
from financy.logging_config import configure_logging, get_logger, bind_contextvars, clear_contextvars
from financy.routes import budget_wizard, budgets, categories, expenses, goals, incomes, integrations

configure_logging()
logger = get_logger(__name__)

# Error tracking is opt-in through SENTRY_DSN
if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=settings.sentry_traces_sample_rate,
        environment=settings.environment,
        release=f"{settings.app_name}@{settings.app_version}",
        send_default_pii=False,
    )
    logger.info("Sentry initialized", environment=settings.environment)
else:
    logger.debug("Sentry disabled", reason="no dsn")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Own the database engine for the lifetime of the app.

    Builds the database engine and session factory on startup and disposes
    of the engine on shutdown.
    """
    logger.info("Financy starting", version=settings.app_version, environment=settings.environment)

    engine = build_engine()
    app.state.engine = engine
    app.state.sessionmaker = build_sessionmaker(engine)

    try:
        if settings.create_tables_on_startup:
            await init_db(engine)

        logger.info("Financy ready")

        yield

    finally:
        logger.info("Financy stopping")
        await close_db(engine)


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Personal finance tracking: expenses, incomes, budgets and savings goals",
    debug=settings.debug,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Integration endpoints share this limiter
app.state.limiter = integrations.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)


@app.middleware("http")
async def add_request_metadata(request: Request, call_next) -> Response:
    """Tag each request with an id and log how long it took."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    start_time = time.perf_counter()

    request.state.request_id = request_id

    # Request fields for every log line emitted while handling it
    clear_contextvars()
    bind_contextvars(request_id=request_id, path=request.url.path, method=request.method)

    response = await call_next(request)

    process_time = time.perf_counter() - start_time
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{process_time:.4f}"

    logger.info(
        "Request completed",
        status_code=response.status_code,
        process_time_ms=round(process_time * 1000, 2),
    )

    return response


@app.get("/")
async def root() -> dict:
    """Service banner with the API sections."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
        "sections": [prefix for prefix, _ in API_SECTIONS],
    }


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "service": settings.app_name, "version": settings.app_version}


@app.get("/health/ready")
async def readiness_check(request: Request) -> dict:
    """Ready once the database answers a trivial query.

    Returns:
        Status with the database latency, 503 if the query fails
    """
    started = time.perf_counter()
    try:
        async with request.app.state.sessionmaker() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Database not ready", error=str(e))
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": {"status": "unhealthy", "error": str(e)}},
        )

    latency_ms = round((time.perf_counter() - started) * 1000, 2)
    return {"status": "healthy", "database": {"status": "healthy", "latency_ms": latency_ms}}


@app.get("/health/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Turn anything the routes did not handle into a 500 carrying the request ID."""
    request_id = getattr(request.state, "request_id", None)
    logger.error(
        "Unhandled exception",
        request_id=request_id,
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc) if settings.debug else "An unexpected error occurred",
            "request_id": request_id,
        },
    )


# Wizard routes sit under the budgets prefix and are registered first
API_SECTIONS = [
    ("/api/goals", goals.router),
    ("/api/expenses", expenses.router),
    ("/api/incomes", incomes.router),
    ("/api/categories", categories.router),
    ("/api/budgets/wizard", budget_wizard.router),
    ("/api/budgets", budgets.router),
    ("/api/integrations", integrations.router),
]

for prefix, section in API_SECTIONS:
    app.include_router(section, prefix=prefix, tags=[prefix.rsplit("/", 1)[-1]])
