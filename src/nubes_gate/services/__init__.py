# src/nubes_gate/services/__init__.py
"""Business logic services for the Nubes Gate application."""

from .credentials import CredentialVerifier
from .dispatcher import CommandDispatcher
from .gate import GateController
from .ledger import EventLedger
from .tokens import SessionTokenIssuer
from .whitelist import Whitelist

__all__ = [
    "CommandDispatcher",
    "CredentialVerifier",
    "EventLedger",
    "GateController",
    "SessionTokenIssuer",
    "Whitelist",
]
