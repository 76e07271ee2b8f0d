import logging
import subprocess
import sys
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

import click
import redis
import uvicorn
from alembic import command
from alembic.config import Config
from alembic.util import CommandError
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from quizapp.core.cache import get_redis_client
from quizapp.core.config import settings
from quizapp.core.database import Base, engine, verify_connection
from quizapp.core.decorator import APIException
from quizapp.core.limiter import custom_rate_limit_exceeded_handler, limiter
from quizapp.models import *
from quizapp.routers import routes

BASE_DIR = Path(__file__).parent
LOG_FILE = BASE_DIR / settings.log_file


# ============================================================================
# Logging
# ============================================================================
def setup_logging():
    """Send application logs to stdout and to the app log file."""
    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

    level = logging.DEBUG if settings.debug else getattr(
        logging, settings.log_level.upper(), logging.INFO
    )

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(LOG_FILE, mode="a", encoding="utf-8"),
        ],
        force=True,
    )

    for noisy in ("sqlalchemy.engine", "uvicorn.access", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logging.getLogger(__name__)


logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    try:
        verify_connection()
        if not settings.production:
            # Production schemas are owned by alembic
            Base.metadata.create_all(bind=engine)
            logger.info("✓ Database tables ensured")
    except SQLAlchemyError as e:
        logger.error(f"✗ Database unavailable at startup: {e}", exc_info=True)
        raise

    yield

    engine.dispose()
    logger.info(f"✓ {settings.app_name} stopped")


app = FastAPI(
    title=settings.app_name,
    description=settings.app_description,
    version=settings.app_version,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    debug=settings.debug,
    lifespan=lifespan,
)

app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def trace_request(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    started = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{time.perf_counter() - started:.4f}"
    return response


# ============================================================================
# Exception Handlers
# ============================================================================
@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": "Validation error",
            "details": jsonable_encoder(exc.errors(), exclude={"ctx", "input"}),
        },
    )


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Unhandled database error: {type(exc).__name__}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Database error occurred"},
    )


app.add_exception_handler(RateLimitExceeded, custom_rate_limit_exceeded_handler)


# ============================================================================
# Health
# ============================================================================
@app.get("/")
async def root():
    return {
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": "production" if settings.production else "development",
    }


@app.get("/health")
@limiter.limit("10/minute")
async def health_check(request: Request):
    """Database is required; the snapshot store only degrades the service."""
    checks = {}

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = "unhealthy"

    try:
        get_redis_client().ping()
        checks["snapshots"] = "healthy"
    except redis.RedisError as e:
        logger.warning(f"Snapshot store health check failed: {e}")
        checks["snapshots"] = "unhealthy"

    if checks["database"] != "healthy":
        status = "unhealthy"
    elif checks["snapshots"] != "healthy":
        status = "degraded"
    else:
        status = "healthy"

    return {"status": status, "timestamp": time.time(), **checks}


for router in routes:
    app.include_router(router)


# ============================================================================
# CLI
# ============================================================================
def run_migrations(revision: str = "head"):
    command.upgrade(Config(str(BASE_DIR / "alembic.ini")), revision)
    logger.info(f"Migrations applied up to {revision}")


@click.group()
def cli():
    """Quiz platform management CLI."""


@cli.command()
@click.option("--revision", default="head", help="Target alembic revision")
def migrate(revision: str):
    """Apply database migrations."""
    try:
        run_migrations(revision)
    except (CommandError, SQLAlchemyError) as e:
        raise click.ClickException(f"Migration failed: {e}")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind the server to")
@click.option("--port", default=8000, help="Port to run the server on")
@click.option("--reload", is_flag=True, help="Enable auto-reload (development only)")
def dev(host: str, port: int, reload: bool):
    """Run development server with Uvicorn."""
    logger.info(f"Development server on {host}:{port} (reload={reload})")
    uvicorn.run("main:app", host=host, port=port, reload=reload, log_level="debug")


@cli.command()
@click.option("--host", default="0.0.0.0", help="Host to bind the server to")
@click.option("--port", default=8000, help="Port to run the server on")
@click.option("--workers", default=4, help="Number of worker processes")
@click.option("--timeout", default=120, help="Worker timeout in seconds")
def prod(host: str, port: int, workers: int, timeout: int):
    """Migrate, then run production server with Gunicorn."""
    try:
        run_migrations()
    except (CommandError, SQLAlchemyError) as e:
        raise click.ClickException(f"Migration failed: {e}")

    cmd = [
        "gunicorn",
        "main:app",
        "--worker-class",
        "uvicorn.workers.UvicornWorker",
        "--workers",
        str(workers),
        "--bind",
        f"{host}:{port}",
        "--timeout",
        str(timeout),
        "--graceful-timeout",
        "30",
        "--access-logfile",
        "-",
        "--error-logfile",
        "-",
    ]
    logger.info(f"Production server on {host}:{port} with {workers} workers")

    try:
        subprocess.run(cmd, check=True)
    except FileNotFoundError:
        raise click.ClickException("Gunicorn not installed")
    except subprocess.CalledProcessError as e:
        raise click.ClickException(f"Gunicorn exited with status {e.returncode}")


@cli.command()
def info():
    """Display application information."""
    click.echo(f"Application: {settings.app_name} v{settings.app_version}")
    click.echo(f"Debug Mode: {settings.debug}")
    click.echo(f"Production: {settings.production}")
    click.echo(f"Submit rate limit: {settings.quiz_submit_rate_limit}")
    click.echo(f"Log file: {LOG_FILE.absolute()}")


if __name__ == "__main__":
    cli()
