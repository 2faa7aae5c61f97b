"""
FastAPI application entry point for the Karakeep semantic search service.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
import logging
import sys

from bookmark_search.config.settings import get_settings
from bookmark_search.api import admin, search, sync
from bookmark_search.api.responses import error_response
from bookmark_search.api.dependencies import get_services, reset_services
from bookmark_search.services.scheduler import BackgroundSync

# Get settings to access log configuration
settings = get_settings()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Configure logging with console and optional file output
# Use UTF-8 encoding to handle Unicode characters in bookmark titles
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
if hasattr(console_handler.stream, "reconfigure"):
    try:
        console_handler.stream.reconfigure(encoding="utf-8", errors="replace")
    except (AttributeError, ValueError, OSError):
        pass  # Stream replaced by a test runner or already configured

handlers = [console_handler]

if settings.log_file:
    file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handlers.append(file_handler)

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format=LOG_FORMAT,
    handlers=handlers,
    force=True  # Override any existing configuration
)

# Suppress overly verbose third-party loggers
logging.getLogger("httpcore").setLevel(logging.INFO)
logging.getLogger("httpx").setLevel(logging.INFO)
logging.getLogger("urllib3").setLevel(logging.INFO)

# Route Uvicorn's loggers through the root handlers and format
for name in ("uvicorn.access", "uvicorn.error"):
    uvicorn_logger = logging.getLogger(name)
    uvicorn_logger.handlers = []
    uvicorn_logger.propagate = True

logger = logging.getLogger(__name__)


async def check_karakeep_connectivity(services) -> bool:
    """
    Check connectivity to Karakeep at startup.

    A failure is logged but not fatal: the background sync keeps retrying on
    its schedule.
    """
    karakeep_url = services.settings.karakeep_url
    logger.info(f"Checking Karakeep API connectivity at {karakeep_url}")

    if await services.karakeep.check_connection():
        logger.info(f"[OK] Successfully connected to Karakeep API at {karakeep_url}")
        return True

    separator = "=" * 80
    logger.error(
        f"\n{separator}\n"
        f"ERROR: Cannot connect to Karakeep API!\n"
        f"Configured URL: {karakeep_url}\n"
        f"Please ensure:\n"
        f"1. Karakeep is running and reachable from this host\n"
        f"2. KARAKEEP_API_KEY is a valid API key (Settings -> API Keys)\n"
        f"{separator}"
    )
    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(f"Starting Karakeep semantic search v{settings.version}")
    logger.info(f"Karakeep URL: {settings.karakeep_url}")
    logger.info(f"Qdrant URL: {settings.qdrant_url} (collection: {settings.qdrant_collection})")
    if settings.log_file:
        logger.info(f"Logging to file: {settings.log_file}")

    services = get_services()
    await check_karakeep_connectivity(services)

    background_sync = None
    if settings.enable_background_sync:
        background_sync = BackgroundSync(services.sync_service, settings.sync_interval_minutes)
        background_sync.start()
    app.state.background_sync = background_sync

    yield

    logger.info("Shutting down...")
    if background_sync is not None:
        await background_sync.stop()
    await reset_services()


# Create FastAPI app
app = FastAPI(
    title="Karakeep Semantic Search",
    description="Semantic search over Karakeep bookmarks backed by Qdrant",
    version=settings.version,
    lifespan=lifespan
)

# Allow browser extensions and dashboards to call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(admin.router, tags=["admin"])
app.include_router(search.router, tags=["search"])
app.include_router(sync.router, tags=["sync"])


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed request parameters as 400 with an error message."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("query", "path", "body"))
        messages.append(f"Invalid parameter '{location}': {error.get('msg')}")
    return error_response("; ".join(messages) or "Invalid request", status_code=400)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Karakeep Semantic Search",
        "version": settings.version,
        "status": "running"
    }


def run():
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)


if __name__ == "__main__":
    run()
