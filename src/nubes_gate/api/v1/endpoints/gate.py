# src/nubes_gate/api/v1/endpoints/gate.py
"""Gate command endpoints for the Nubes Gate API."""

from __future__ import annotations

from fastapi import APIRouter

from nubes_gate.api.v1.dependencies import (
    BearerTokenDep,
    GateControllerDep,
    raise_for_gate_error,
)
from nubes_gate.core.errors import GateError
from nubes_gate.schemas.gate import GateOpenResponse, LedgerReceiptResponse

router = APIRouter(prefix="/gate", tags=["gate"])


@router.post(
    "/open",
    summary="Open the gate",
    response_model=GateOpenResponse,
)
async def open_gate(token: BearerTokenDep, controller: GateControllerDep) -> GateOpenResponse:
    """Publish the open command and record the activation on chain.

    A failed ledger write is reported in ``ledger_error`` but the request
    still succeeds, since the command has already been delivered.
    """
    try:
        result = await controller.open_gate(token)
    except GateError as err:
        raise_for_gate_error(err)

    receipt = None
    if result.receipt is not None:
        receipt = LedgerReceiptResponse(
            transaction_id=result.receipt.transaction_id,
            block_num=result.receipt.block_num,
        )

    return GateOpenResponse(
        message="Gate command sent successfully",
        topic=result.delivery.channel,
        command=result.delivery.payload,
        username=result.identity,
        token=result.token,
        ledger=receipt,
        ledger_error=result.ledger_error,
    )
