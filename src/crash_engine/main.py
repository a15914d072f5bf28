# src/crash_engine/main.py
"""Main entry point for the crash engine service."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from crash_engine.api.v1 import generation_router, multipliers_router
from crash_engine.api.v1.dependencies import ControllerDep
from crash_engine.core.log_config import configure_logging
from crash_engine.core.settings import settings
from crash_engine.init_db import init_db
from crash_engine.services.batch_controller import get_batch_controller
from crash_engine.services.notifier import get_socket_client
from crash_engine.services.round_store import RoundStoreError

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Crash Engine API",
    description="Round outcome generation and batch sequencing for a crash game",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(multipliers_router, prefix="/api/v1")
app.include_router(generation_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    if settings.database_url.startswith("sqlite"):
        init_db()
    controller = get_batch_controller()
    try:
        await controller.initialize()
    except RoundStoreError as e:
        logger.warning("Could not reconcile round counter at startup: %s", e)
    if settings.generator_enabled:
        await controller.start()
        logger.info(
            "Generator started: batch size %d, queue threshold %d, check interval %.1fs",
            controller.batch_size,
            controller.queue_threshold,
            controller.check_interval_seconds,
        )
    else:
        logger.info("Generator disabled; serving queries only")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_batch_controller().stop()
    await get_socket_client().close()


@app.get("/health")
async def health_check(controller: ControllerDep) -> dict[str, object]:
    """Health check endpoint reporting batching configuration."""
    snapshot = controller.status()
    return {
        "status": "ok",
        "currentRound": snapshot.current_round,
        "isGenerating": snapshot.generating,
        "batchSize": snapshot.batch_size,
        "queueThreshold": snapshot.queue_threshold,
        "queueCheckInterval": int(snapshot.queue_check_interval_seconds * 1000),
    }


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("crash_engine.main:app", host="0.0.0.0", port=settings.port, reload=settings.debug)
