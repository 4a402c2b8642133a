# src/nubes_gate/main.py
"""Main entry point for the Nubes Gate application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nubes_gate.api.v1 import auth_router, gate_router, logs_router, system_router
from nubes_gate.core.settings import settings
from nubes_gate.services.hive import get_hive_client
from nubes_gate.services.mqtt import get_mqtt_transport

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Nubes Gate API",
    description="Authenticated gate control with an on-chain audit trail",
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

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(gate_router, prefix="/api/v1")
app.include_router(logs_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    get_mqtt_transport().start()
    if not settings.ledger_enabled:
        logger.warning("HIVE_USERNAME/HIVE_POSTING_KEY not set; activations will not be recorded")
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    logger.info("Shutting down gracefully...")
    get_mqtt_transport().stop()
    await get_hive_client().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


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
    uvicorn.run("nubes_gate.main:app", host="0.0.0.0", port=6000, reload=settings.debug)
