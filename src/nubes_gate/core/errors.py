"""Error taxonomy shared by the gate services and the API layer."""

from __future__ import annotations


class GateError(RuntimeError):
    """Base class for failures surfaced to API callers.

    Every subclass carries a stable, user-visible ``reason`` string and the
    HTTP status code the API layer answers with.
    """

    status_code: int = 500
    default_reason: str = "Internal error"

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class ValidationError(GateError):
    """Missing or malformed input."""

    status_code = 400
    default_reason = "Invalid request"


class AuthenticationFailure(GateError):
    """Bad credential or bad session token."""

    status_code = 401
    default_reason = "Invalid or expired token"


class AuthorizationFailure(GateError):
    """Identity is not on the whitelist."""

    status_code = 403
    default_reason = "User not authorized"


class TransportUnavailable(GateError):
    """The message transport is not connected; the command was not sent."""

    status_code = 503
    default_reason = "MQTT client not connected"


class PublishFailed(GateError):
    """The broker rejected or never acknowledged the publish."""

    status_code = 500
    default_reason = "Failed to send command"

    def __init__(self, cause: str | None = None) -> None:
        self.cause = cause
        super().__init__(self.default_reason)


class LedgerFault(GateError):
    """Ledger write or read failed.

    Write faults are soft: they are attached to an otherwise successful gate
    response and never change its outcome.
    """

    status_code = 502
    default_reason = "Ledger unavailable"
