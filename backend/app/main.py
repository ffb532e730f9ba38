import asyncio
import logging
from pathlib import Path

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .config import get_settings
from contextlib import asynccontextmanager, suppress
from .core.errors import StitchError, ValidationError
from .db import base as db_base

# Configure logging

# Ensure logs directory exists
logs_dir = Path(__file__).parent.parent / "logs"
logs_dir.mkdir(exist_ok=True)

# Configure both file and console logging
logging.basicConfig(
    level=getattr(logging, get_settings().LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.FileHandler(logs_dir / "stitch.log", encoding="utf-8"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    from .orchestration.pipeline import get_submission_pipeline
    from .services.scheduler import run_scheduler

    settings = get_settings()
    db_base.init_db()

    scheduler_task = None
    if settings.SCHEDULER_ENABLED:
        logger.info("Scheduler enabled; running jobs every %ss", settings.SCHEDULER_INTERVAL_S)
        scheduler_task = asyncio.create_task(run_scheduler(settings.SCHEDULER_INTERVAL_S))
    try:
        yield
    finally:
        if scheduler_task is not None:
            scheduler_task.cancel()
            with suppress(asyncio.CancelledError):
                await scheduler_task
        # Let escalation deliveries finish before the engine goes away
        try:
            await get_submission_pipeline().events.drain()
        except Exception as e:
            logger.warning("Draining event deliveries failed: %s", e)
        try:
            db_base.SessionLocal.remove()
        except Exception as e:
            logger.warning("SessionLocal.remove() failed: %s", e)
        try:
            db_base.engine.dispose()
        except Exception as e:
            logger.warning("engine.dispose() failed: %s", e)


# Initialize FastAPI app with lifespan
app = FastAPI(
    title="Stitch API",
    description="Daily voice prompts with moderated, anonymous audio responses",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Get settings
settings = get_settings()

# Set up CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=getattr(settings, "CORS_ORIGIN_REGEX", None),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


# Health check endpoint
@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "Stitch API",
        "environment": get_settings().ENVIRONMENT,
    }


# Import and include routers
from .api.v1.routers import prompts  # noqa: E402
from .api.v1.routers import resources  # noqa: E402
from .api.v1.routers import responses  # noqa: E402

# API v1 routes
app.include_router(prompts.router, prefix="/api/v1")
app.include_router(responses.router, prefix="/api/v1")
app.include_router(resources.router, prefix="/api/v1")


# Root endpoint
@app.get("/")
async def root():
    return {"message": "Welcome to Stitch API", "docs": "/api/docs", "version": "0.1.0"}


# Error handlers
@app.exception_handler(StitchError)
async def stitch_error_handler(request, exc: StitchError):
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc, exc_info=True)
        return JSONResponse(status_code=exc.status_code, content={"error": "Internal server error"})
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc):
    logger.info("Malformed request body: %s", exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ValidationError().to_payload(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )
