"""
BrokerBot Backend - Main Application Entry Point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from brokerbot.core.config import settings
from brokerbot.core.langfuse_handler import flush_langfuse
from brokerbot.core.logging import logger
from brokerbot.db import init_db
from brokerbot.api.routes import admin, webhook


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management."""
    # Startup
    init_db()
    logger.info(f"Starting {settings.APP_NAME} in {settings.APP_ENV} mode")
    yield
    # Shutdown
    flush_langfuse()
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.APP_NAME,
    description="WhatsApp assistant for insurance brokers",
    version="1.0.0",
    lifespan=lifespan,
)

# Include API Routers
app.include_router(webhook.router, tags=["Webhook"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "env": settings.APP_ENV,
    }
