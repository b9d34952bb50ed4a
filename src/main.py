"""
Lehrershow Song Submissions - Main Application

Single FastAPI application that serves:
- The public submission API used by the song form
- The staff dashboard API (approved/pending songs, settings)
- Spotify search for the form
- Health check endpoint

The browser talks to the hosted services (UploadThing, Turnstile widget)
directly; this process only validates what they hand back.
"""

import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from src.config import (
    APP_ENV,
    APP_HOST,
    APP_PORT,
    APP_VERSION,
    AUTH_PASSWORD,
    DEBUG,
    LOG_LEVEL,
    YOUTUBE_API_KEY,
    check_required_settings,
    ensure_directories,
)
from src.database import init_db
from src.errors import ConfigurationError, SubmissionError
from src.routes.api import router as api_router

# ---------------------------------------------------------------------------
# Logging setup - stdout only
# ---------------------------------------------------------------------------
logger.remove()

logger.add(
    sys.stdout,
    level="DEBUG" if DEBUG else LOG_LEVEL,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    colorize=True,
)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    On startup:
        1. Check required credentials (fatal if missing)
        2. Create the database directory
        3. Initialize / migrate the SQLite database

    On shutdown:
        4. Close the shared Spotify HTTP client
    """
    logger.info("🚀 Starting Lehrershow Song Submissions v{}", APP_VERSION)
    logger.info("📋 Environment: {} | Debug: {}", APP_ENV, DEBUG)

    # Step 1: Configuration
    try:
        check_required_settings()
    except ConfigurationError as e:
        logger.critical("❌ {}", e)
        raise

    if AUTH_PASSWORD:
        logger.info("🔒 Staff login enabled")
    else:
        logger.warning("🔓 Staff login DISABLED (no AUTH_PASSWORD set)")

    if not YOUTUBE_API_KEY:
        logger.warning("🎬 No YOUTUBE_API_KEY set, YouTube titles will not be looked up")

    # Step 2: Directories
    ensure_directories()

    # Step 3: Database
    try:
        init_db()
    except Exception as e:
        logger.critical("❌ Database initialization failed: {}", e)
        raise

    logger.success("✅ Application ready, listening on {}:{}", APP_HOST, APP_PORT)

    yield

    logger.info("🛑 Shutting down Lehrershow Song Submissions …")

    # Step 4: Close shared httpx client
    from src.services.spotify import close_client

    await close_client()

    logger.info("👋 Shutdown complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Lehrershow Song Submissions",
        description=(
            "Song submissions for the Lehrershow: visitors submit a song via "
            "search, YouTube link or uploaded file; staff review them."
        ),
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if DEBUG else None,
        redoc_url="/redoc" if DEBUG else None,
    )

    # ------------------------------------------------------------------
    # Service errors -> JSON
    # ------------------------------------------------------------------
    @app.exception_handler(SubmissionError)
    async def submission_error_handler(request: Request, exc: SubmissionError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message},
        )

    # ------------------------------------------------------------------
    # Request logging middleware
    # ------------------------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every incoming HTTP request with timing information."""
        start = time.time()
        try:
            response = await call_next(request)
        except Exception as exc:
            duration = round(time.time() - start, 3)
            logger.error(
                "❌ {method} {path} - unhandled error after {duration}s: {exc}",
                method=request.method,
                path=request.url.path,
                duration=duration,
                exc=exc,
            )
            raise

        duration = round(time.time() - start, 3)
        status = response.status_code

        if status >= 500:
            log = logger.error
        elif status >= 400:
            log = logger.warning
        else:
            log = logger.info

        log(
            "📤 {method} {path} - {status} [{duration}s]",
            method=request.method,
            path=request.url.path,
            status=status,
            duration=duration,
        )
        return response

    # ------------------------------------------------------------------
    # Register routers
    # ------------------------------------------------------------------
    app.include_router(api_router)  # /api/*  - JSON endpoints

    return app


# ---------------------------------------------------------------------------
# Create the app instance (used by Uvicorn)
# ---------------------------------------------------------------------------
app = create_app()


# ---------------------------------------------------------------------------
# Direct execution (development)
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=APP_HOST,
        port=APP_PORT,
        reload=DEBUG,
        log_level="debug" if DEBUG else "info",
    )
