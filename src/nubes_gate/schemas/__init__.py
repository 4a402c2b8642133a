# src/nubes_gate/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .auth import LoginRequest, SessionResponse
from .gate import GateOpenResponse, LedgerReceiptResponse
from .logs import DoorEventResponse, DoorLogResponse

__all__ = [
    "LoginRequest", "SessionResponse",
    "GateOpenResponse", "LedgerReceiptResponse",
    "DoorEventResponse", "DoorLogResponse",
]
