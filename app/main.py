"""CragPicks FastAPI application.

Scoring core for climbing fantasy predictions: pulls official results from
the provider, scores podium predictions and maintains league standings.
"""

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routes import admin, health, scoring, standings
from app.config import get_settings

settings = get_settings()

logging.basicConfig(level=settings.log_level.upper(), format="%(message)s")

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("starting_cragpicks", version="0.1.0")
    yield
    logger.info("shutting_down_cragpicks")


# Create FastAPI application
app = FastAPI(
    title="CragPicks",
    description="Climbing fantasy prediction scoring and league standings",
    version="0.1.0",
    lifespan=lifespan,
)

# Include API routers
app.include_router(health.router)
app.include_router(scoring.router)
app.include_router(standings.router)
app.include_router(admin.router)


@app.exception_handler(500)
async def server_error_handler(request: Request, exc):
    """Custom 500 handler."""
    logger.error("server_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
