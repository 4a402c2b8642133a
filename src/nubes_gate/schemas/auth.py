"""Authentication Pydantic schemas."""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Schema for login submissions.

    Both fields are optional at the schema level so that a missing value is
    reported with the same message as an empty one.
    """

    username: str | None = Field(None, description="Hive account name")
    posting_key: str | None = Field(
        None,
        description="WIF-encoded posting private key; used once, never stored",
    )


class SessionResponse(BaseModel):
    """Response carrying a (re)issued session token."""

    success: bool = Field(True, description="Always true for issued tokens")
    token: str = Field(..., description="Signed bearer token")
    username: str = Field(..., description="Account the token belongs to")
