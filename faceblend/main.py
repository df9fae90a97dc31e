"""FastAPI application entry point."""
import os

# Force UTC before any imports that cache timezone information
os.environ['TZ'] = 'UTC'

import time
import sys

if hasattr(time, "tzset"):
    time.tzset()

# Ensure console streams can emit Unicode on Windows
for stream in (sys.stdout, sys.stderr):
    if hasattr(stream, "reconfigure"):
        stream.reconfigure(encoding="utf-8", errors="backslashreplace")

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from contextlib import asynccontextmanager

from faceblend.config import get_settings
from faceblend.version import APP_VERSION
from faceblend.dependencies import close_clients
from faceblend.routers import daily_game, health
from faceblend.services.identity_pool import IdentityPoolError, get_identity_pool
from faceblend.services.puzzle_selector import OPTION_COUNT

# Create logs directory if it doesn't exist
logs_dir = Path("logs")
logs_dir.mkdir(exist_ok=True)

log_file = logs_dir / "faceblend.log"
api_log_file = logs_dir / "faceblend_api.log"

print(f"General logging to: {log_file.absolute()}")
print(f"API requests logging to: {api_log_file.absolute()}")

# 1 MB per file, keep 5 backups
rotating_handler = RotatingFileHandler(
    log_file,
    maxBytes=1024 * 1024,
    backupCount=5,
    encoding='utf-8',
)
rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

api_rotating_handler = RotatingFileHandler(api_log_file, maxBytes=2 * 1024 * 1024, backupCount=15, encoding='utf-8')
api_rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))

# Force=True overrides any configuration installed by uvicorn
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        rotating_handler,
    ],
    force=True,
)

logger = logging.getLogger(__name__)

# Dedicated API request logger
api_logger = logging.getLogger("faceblend.api")
api_logger.handlers.clear()
api_logger.addHandler(api_rotating_handler)
api_logger.setLevel(logging.INFO)
api_logger.propagate = False

uvicorn_access_logger = logging.getLogger("uvicorn.access")
uvicorn_access_logger.setLevel(logging.INFO)
if rotating_handler not in uvicorn_access_logger.handlers:
    uvicorn_access_logger.addHandler(rotating_handler)

# httpx logs every request line at INFO, including the TMDB api_key query parameter
logging.getLogger("httpx").setLevel(logging.WARNING)

from datetime import datetime, UTC
logger.info("=" * 100)
logger.info("*" * 36 + " Logging system initialized " + "*" * 36)
logger.info("=" * 100)
logger.info(f"Timezone configured: TZ={os.environ.get('TZ', 'NOT SET')}")
logger.info(f"Current UTC time: {datetime.now(UTC)}")

settings = get_settings()


def check_identity_pool() -> None:
    """Load the pool once at startup so a broken pool file shows up in the logs immediately."""
    try:
        pool = get_identity_pool(settings.identity_pool_path)
    except IdentityPoolError as e:
        logger.error(f"Identity pool could not be loaded: {e}")
        return

    if len(pool) < OPTION_COUNT:
        logger.warning(f"Identity pool has only {len(pool)} entries; puzzles need {OPTION_COUNT}")


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """Manage application startup and shutdown tasks."""
    logger.info("=" * 60)
    logger.info("Old School Faces API Starting")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Day timezone: {settings.day_timezone}")
    logger.info(f"Cache backend: {settings.cache_backend}")
    logger.info(f"Redis: {'Enabled' if settings.redis_url else 'In-Memory Fallback'}")
    logger.info("=" * 60)

    check_identity_pool()

    if settings.cache_backend == "database":
        from faceblend.database import init_models
        await init_models()

    try:
        yield
    finally:
        try:
            await close_clients()
        except Exception as e:
            logger.error(f"Error closing HTTP clients: {e}")

        logger.info("Old School Faces API Shutting Down... Goodbye!")


app = FastAPI(
    title="Old School Faces API",
    description="Daily blended-portrait guessing game",
    version=APP_VERSION,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors with user-friendly messages."""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    errors = []
    for error in exc.errors():
        loc = error.get("loc", [])
        msg = error.get("msg", "Validation error")
        error_type = error.get("type", "unknown")

        field_path = " -> ".join(str(x) for x in loc[1:]) if len(loc) > 1 else "unknown field"
        errors.append({
            "field": field_path,
            "message": msg,
            "type": error_type
        })

    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "errors": errors
        }
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request and response to the API log with timing and client info."""
    start_time = time.time()

    client_ip = request.client.host if request.client else "unknown"
    user_agent = request.headers.get("user-agent", "unknown")
    method = request.method
    path = request.url.path

    request_id = f"{method}:{path}:{int(start_time * 1000) % 100000}"

    api_logger.info(f">> {request_id} | START | {method} {path} | IP: {client_ip} | UA: {user_agent[:50]}...")

    try:
        response = await call_next(request)
        process_time = time.time() - start_time

        api_logger.info(
            f"<< {request_id} | COMPLETE | {method} {path} | "
            f"Status: {response.status_code} | "
            f"Time: {process_time:.3f}s | "
            f"IP: {client_ip}"
        )

        if response.status_code >= 400:
            content_type = response.headers.get("content-type", "unknown")
            api_logger.warning(f"<< {request_id} | ERROR_RESPONSE | Content-Type: {content_type}")

        return response

    except Exception as e:
        process_time = time.time() - start_time
        api_logger.error(
            f"<< {request_id} | EXCEPTION | {method} {path} | "
            f"Error: {str(e)[:100]} | "
            f"Time: {process_time:.3f}s | "
            f"IP: {client_ip}"
        )
        raise


allowed_origins = settings.cors_origins
if not allowed_origins:
    # Default origins for development + production fallback
    allowed_origins = [
        settings.frontend_url,
        "http://localhost:3000",              # Next.js dev server
        "http://localhost:5173",              # Vite dev server
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(daily_game.router)
app.include_router(health.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Old School Faces API",
        "version": APP_VERSION,
        "environment": settings.environment,
        "docs": "/docs",
    }
