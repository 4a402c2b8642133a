# src/nubes_gate/api/v1/endpoints/logs.py
"""Door event log endpoints for the Nubes Gate API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query

from nubes_gate.api.v1.dependencies import GateControllerDep, raise_for_gate_error
from nubes_gate.core.errors import GateError
from nubes_gate.core.settings import settings
from nubes_gate.schemas.logs import DoorEventResponse, DoorLogResponse

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("", summary="List recent gate activations", response_model=DoorLogResponse)
async def list_door_events(
    controller: GateControllerDep,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> DoorLogResponse:
    """Return recorded activations from the Hive ledger, newest first."""
    try:
        events = await controller.recent_events(limit or settings.logs_default_limit)
    except GateError as err:
        raise_for_gate_error(err)

    return DoorLogResponse(
        count=len(events),
        events=[DoorEventResponse.model_validate(event) for event in events],
    )
