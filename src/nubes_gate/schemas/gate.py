"""Gate command Pydantic schemas."""

from pydantic import BaseModel, Field


class LedgerReceiptResponse(BaseModel):
    """Where an activation was recorded on chain."""

    transaction_id: str = Field(..., description="Hive transaction id")
    block_num: int = Field(..., description="Block that included the transaction")


class GateOpenResponse(BaseModel):
    """Result of a gate-open request."""

    success: bool = Field(True, description="True once the broker acknowledged the command")
    message: str = Field(..., description="Human-readable outcome")
    topic: str = Field(..., description="MQTT topic the command was published to")
    command: str = Field(..., description="Command payload")
    username: str = Field(..., description="Account that opened the gate")
    token: str = Field(..., description="Refreshed bearer token")
    ledger: LedgerReceiptResponse | None = Field(
        None,
        description="Audit receipt, absent if the ledger write failed",
    )
    ledger_error: str | None = Field(None, description="Non-fatal ledger write error")
