# src/nubes_gate/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .gate import router as gate_router
from .logs import router as logs_router
from .system import router as system_router

__all__ = [
    "auth_router",
    "gate_router",
    "logs_router",
    "system_router",
]
