"""
Device Factory Management - Main FastAPI Application
Version: 1.1.0

Changelog:
v1.1.0 (2026-03-04): DeviceFactoryError handler; SWM client closed on shutdown
v1.0.0 (2026-02-27): Initial FastAPI application
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from config import settings, init_directories
from api import devices
from services.exceptions import DeviceFactoryError

init_directories()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(f'{settings.LOGS_DIR}/api.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    # Initialize database
    from models import init_db
    await init_db()

    logger.info(f"Device creation type: {settings.DEVICE_CREATION_TYPE}, "
                f"SWM sync {'enabled' if settings.vehicle_sync_enabled() else 'disabled'}")

    yield

    # Shutdown
    logger.info("Shutting down services...")
    await devices.lifecycle_service.aclose()
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Device factory provisioning and lifecycle management",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DeviceFactoryError)
async def device_factory_error_handler(request: Request, exc: DeviceFactoryError):
    """Map service errors to {code, message} with the error's status hint"""
    logger.info(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "message": exc.message},
    )


# Include API routers
app.include_router(devices.router, prefix="/api", tags=["Devices"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "app": settings.APP_NAME
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        workers=settings.API_WORKERS
    )
