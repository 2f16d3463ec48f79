"""
app/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Registers API routes (users, seats, dashboard, settings, tests, uploads)
- No business logic should be written here
- Manages application lifecycle (startup/shutdown)
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
import time

from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.db.mongo import connect_to_mongo, close_mongo_connection, check_database_health
from app.db.indexes import create_indexes
from app.db.repository import build_repository
from app.services.scheduler import DueDateScheduler
from app.services.store import init_store, get_store
from app.api import users, seats, dashboard, settings as settings_api, notifications, uploads

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("🚀 Starting VidhyaDham application...")
    app.state.scheduler = None

    try:
        # Validate configuration
        logger.info("Validating configuration...")
        validate_settings()
        logger.info("✅ Configuration validated")

        if settings.uses_mongo:
            # Connect to MongoDB
            logger.info("Connecting to MongoDB...")
            await connect_to_mongo()
            logger.info("✅ MongoDB connected")

            # Create database indexes
            logger.info("Creating database indexes...")
            await create_indexes()
            logger.info("✅ Database indexes created")

        # Load the seat store
        store = init_store(build_repository())
        await store.load()
        logger.info("✅ Seat store loaded")

        if settings.SCHEDULER_ENABLED:
            app.state.scheduler = DueDateScheduler(store)
            app.state.scheduler.start()

        logger.info("🎉 VidhyaDham application started successfully!")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Storage: {settings.STORAGE_BACKEND}")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield  # Application runs here

    # Shutdown
    logger.info("🛑 Shutting down VidhyaDham application...")

    try:
        if app.state.scheduler is not None:
            await app.state.scheduler.stop()

        if settings.uses_mongo:
            await close_mongo_connection()
            logger.info("✅ MongoDB connection closed")

        logger.info("👋 VidhyaDham application shut down successfully")

    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}", exc_info=True)


# Create FastAPI app with lifespan
app = FastAPI(
    title="VidhyaDham - Library Seat Booking",
    description="Seat, slot and fee management for a study library",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,  # Disable docs in production
    redoc_url="/redoc" if settings.is_development else None,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to all responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # Log slow requests
    if process_time > 5.0:  # More than 5 seconds
        logger.warning(
            f"Slow request detected: {request.method} {request.url.path}",
            extra={"process_time": process_time}
        )

    return response


add_exception_handlers(app)

# Register API routes
app.include_router(users.router, prefix=settings.API_PREFIX)
app.include_router(seats.router, prefix=settings.API_PREFIX)
app.include_router(dashboard.router, prefix=settings.API_PREFIX)
app.include_router(settings_api.router, prefix=settings.API_PREFIX)
app.include_router(notifications.router, prefix=settings.API_PREFIX)
app.include_router(uploads.router, prefix=settings.API_PREFIX)

# Uploaded identity documents
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


# Root endpoint
@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic info."""
    return {
        "name": "VidhyaDham API",
        "version": APP_VERSION,
        "description": "Library seat booking and fee management",
        "status": "running",
        "environment": settings.ENVIRONMENT
    }


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Comprehensive health check endpoint.
    Checks storage, notification configuration and the scheduler.
    """
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "environment": settings.ENVIRONMENT,
        "version": APP_VERSION,
        "checks": {}
    }

    # Check database
    if settings.uses_mongo:
        db_healthy = await check_database_health()
        health_status["checks"]["database"] = "healthy" if db_healthy else "unhealthy"
        if not db_healthy:
            health_status["status"] = "unhealthy"
    else:
        health_status["checks"]["database"] = "memory"

    # Check store
    try:
        store = get_store()
        health_status["checks"]["store"] = "loaded" if store.is_loaded else "not_loaded"
        library_settings = store.library_settings
        health_status["checks"]["email"] = (
            "configured" if library_settings.has_email_config else "not_configured"
        )
        bots = library_settings.active_bots()
        health_status["checks"]["telegram"] = f"{len(bots)} bot(s)" if bots else "not_configured"
    except RuntimeError:
        health_status["checks"]["store"] = "not_initialized"
        health_status["status"] = "unhealthy"

    scheduler = getattr(request.app.state, "scheduler", None)
    health_status["checks"]["scheduler"] = "running" if scheduler and scheduler.is_running else "stopped"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)


# Readiness probe (for Kubernetes/orchestration)
@app.get("/ready", tags=["Health"])
async def readiness_check():
    """
    Readiness probe - indicates if app is ready to receive traffic.
    """
    try:
        if not get_store().is_loaded:
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "reason": "store_not_loaded"}
            )
    except RuntimeError:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "reason": "store_not_initialized"}
        )

    if settings.uses_mongo and not await check_database_health():
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "reason": "database_unavailable"}
        )

    return {"status": "ready"}


# Liveness probe (for Kubernetes/orchestration)
@app.get("/live", tags=["Health"])
async def liveness_check():
    """
    Liveness probe - indicates if app is alive.
    """
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
