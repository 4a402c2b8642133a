# src/nubes_gate/api/v1/endpoints/auth.py
"""Authentication endpoints for the Nubes Gate API."""

from __future__ import annotations

from fastapi import APIRouter, status

from nubes_gate.api.v1.dependencies import (
    BearerTokenDep,
    GateControllerDep,
    raise_for_gate_error,
)
from nubes_gate.core.errors import GateError
from nubes_gate.schemas.auth import LoginRequest, SessionResponse

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/login",
    summary="Authenticate with a Hive posting key",
    status_code=status.HTTP_200_OK,
    response_model=SessionResponse,
)
async def login_user(payload: LoginRequest, controller: GateControllerDep) -> SessionResponse:
    """Check the whitelist and the posting key, then issue a session token."""
    try:
        grant = await controller.login(payload.username, payload.posting_key)
    except GateError as err:
        raise_for_gate_error(err)

    return SessionResponse(token=grant.token, username=grant.identity)


@router.post(
    "/verify",
    summary="Validate and refresh a session token",
    response_model=SessionResponse,
)
async def verify_token(token: BearerTokenDep, controller: GateControllerDep) -> SessionResponse:
    """Return a refreshed token so active sessions never expire."""
    try:
        grant = controller.verify_session(token)
    except GateError as err:
        raise_for_gate_error(err)

    return SessionResponse(token=grant.token, username=grant.identity)
