"""Door event log Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field


class DoorEventResponse(BaseModel):
    """A recorded gate activation."""

    action: str
    user: str
    timestamp: str
    message: str
    block_num: int | None = Field(None, description="Block containing the event")
    trx_id: str | None = Field(None, description="Transaction id of the event")
    sequence: int | None = Field(None, description="Position in the account history")

    model_config = ConfigDict(from_attributes=True)


class DoorLogResponse(BaseModel):
    """Recent activations, newest first."""

    success: bool = True
    count: int
    events: list[DoorEventResponse]
