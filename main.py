"""
StockFlow WMS - Order Fulfillment Engine
FastAPI Application Entry Point
"""
import uvicorn
from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging

from stockflow import __version__
from stockflow.core import settings, engine, Base
from stockflow.core.logging import setup_logging
from stockflow.api import api_router
from stockflow.api.errors import register_exception_handlers
from stockflow.jobs import start_scheduler, stop_scheduler

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


# Lifespan for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Create tables if not exist
    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.APP_NAME} starting on port {settings.APP_PORT}")

    # Start background scheduler for ledger reconciliation
    start_scheduler()

    yield

    # Shutdown
    stop_scheduler()
    logger.info(f"{settings.APP_NAME} shutting down")

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Inventory allocation, picking and back-order fulfillment",
    version=__version__,
    lifespan=lifespan
)

register_exception_handlers(app)

# Include routers
app.include_router(api_router, prefix="/api")

# Health check
@app.get("/health")
async def health_check():
    return {"status": "healthy", "app": settings.APP_NAME}

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.APP_PORT,
        reload=settings.DEBUG
    )
