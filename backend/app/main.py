# backend/app/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .database import init_db
from .errors import register_error_handlers
from .routes.v1 import (
    bookings as bookings_v1,
    credits as credits_v1,
    health as health_v1,
    profile as profile_v1,
    prometheus as prometheus_v1,
    sessions as sessions_v1,
    subscriptions as subscriptions_v1,
    users as users_v1,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")

    if is_running_tests() or settings.is_testing:
        logger.info("Running under pytest (test mode active)")
    else:
        init_db()

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")

api_v1.include_router(sessions_v1.router, prefix="/sessions")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(subscriptions_v1.router, prefix="/subscriptions")
api_v1.include_router(credits_v1.router, prefix="/credits")
api_v1.include_router(profile_v1.router)
api_v1.include_router(users_v1.router)
api_v1.include_router(health_v1.router)
api_v1.include_router(prometheus_v1.router)

app.include_router(api_v1)

# Keep the FastAPI instance available for tooling
fastapi_app = app

__all__ = ["app", "fastapi_app"]
