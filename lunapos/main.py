from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from lunapos.database.database import async_engine, create_tables

# Import middleware and error handlers
from lunapos.common.middleware import RequestLoggingMiddleware, RequestTimeoutMiddleware
from lunapos.common.exceptions import register_exception_handlers

# Import routers
from lunapos.modules.orders.router import router as orders_router
from lunapos.modules.shifts.router import router as shifts_router
from lunapos.modules.analytics.router import router as analytics_router

# Import models for table creation
import lunapos.modules.orders.models
import lunapos.modules.shifts.models

from lunapos.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Luna POS API",
    description="Point of sale backend: orders, daily shift reconciliation and sales analytics",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters! the last one added runs first)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestTimeoutMiddleware, timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials="*" not in settings.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(orders_router, prefix=settings.API_PREFIX)
app.include_router(shifts_router, prefix=settings.API_PREFIX)
app.include_router(analytics_router, prefix=settings.API_PREFIX)


@app.get("/")
async def read_root():
    return {
        "message": "Luna POS API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("Luna POS API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    # No migration tool: create missing tables when enabled
    if settings.AUTO_CREATE_TABLES:
        await create_tables()
        logger.info("Database tables ensured")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Luna POS API shutting down...")
    await async_engine.dispose()
