"""Pulseboard — FastAPI Application Entry Point.

Serves the backend API that the resilient accessors call as their first
tier, plus dev tooling for loading mock data.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.auth_routes import router as auth_router
from app.api.metrics_routes import router as metrics_router
from app.api.profile_routes import router as profile_router
from app.api.suggestion_routes import router as suggestion_router
from app.api.system_routes import router as system_router
from app.core.logging import get_logger
from app.database import get_database
from app.mock_data.context import SessionDataContext
from app.scheduler.jobs import start_scheduler, stop_scheduler
from app.storage.local_cache import LocalCache

logger = get_logger("main")


IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("🚀 Pulseboard starting up...")
    logger.info(f"🌍 Environment: {'SERVERLESS' if IS_SERVERLESS else 'LOCAL'}")

    app.state.cache = LocalCache()
    app.state.data_context = SessionDataContext(app.state.cache)

    database = get_database()
    if not await database.test_connection():
        logger.error("❌ Database NOT connected — endpoints will fail")
    if not IS_SERVERLESS:
        start_scheduler()
    yield
    if not IS_SERVERLESS:
        stop_scheduler()
    await database.dispose()
    logger.info("Pulseboard shut down")


app = FastAPI(
    title="Pulseboard",
    description="Social media dashboard backend — linked profiles, metrics and content suggestions.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(system_router)
app.include_router(auth_router)
app.include_router(profile_router)
app.include_router(suggestion_router)
app.include_router(metrics_router)
