# src/nubes_gate/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import auth_router, gate_router, logs_router, system_router

__all__ = [
    "auth_router",
    "gate_router",
    "logs_router",
    "system_router",
]
