"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated, NoReturn

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from nubes_gate.core.errors import GateError
from nubes_gate.services.gate import GateController, get_gate_controller

# HTTP Bearer scheme; missing headers are reported by get_bearer_token
bearer_scheme = HTTPBearer(auto_error=False)


def get_gate_controller_dep() -> GateController:
    """Get the GateController for dependency injection."""
    return get_gate_controller()


# Type alias for controller dependency
GateControllerDep = Annotated[GateController, Depends(get_gate_controller_dep)]


def raise_for_gate_error(error: GateError) -> NoReturn:
    """Translate a service error into the matching HTTP error.

    Raises:
        HTTPException: Always, with the error's status code and reason.
    """
    raise HTTPException(status_code=error.status_code, detail=error.reason) from error


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Extract the raw bearer token from the Authorization header.

    Raises:
        HTTPException: If no bearer token was supplied.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
        )
    return credentials.credentials


# Type alias for bearer token dependency
BearerTokenDep = Annotated[str, Depends(get_bearer_token)]


def get_current_identity(token: BearerTokenDep, controller: GateControllerDep) -> str:
    """Get the account behind the bearer token.

    Args:
        token: Raw bearer token
        controller: Gate controller performing token and whitelist checks

    Returns:
        Account name of the authenticated caller

    Raises:
        HTTPException: 401 for invalid or expired tokens, 403 for accounts
            that left the whitelist
    """
    try:
        return controller.authenticate(token)
    except GateError as err:
        raise_for_gate_error(err)


# Type alias for current identity dependency
CurrentIdentityDep = Annotated[str, Depends(get_current_identity)]
