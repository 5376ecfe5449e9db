from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    """
    Schema for creating a new event owner.
    """

    name: str = Field(..., min_length=1, description="Display name.", examples=["Ada Lovelace"])
    email: str = Field(
        ...,
        min_length=3,
        description="Unique email address of the user.",
        examples=["ada@example.com"],
    )


class UserSummary(BaseModel):
    """
    Compact owner reference embedded in event payloads.
    """

    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class UserRead(UserSummary):
    """
    Response schema for reading a user.
    """

    email: str
    created_at: datetime | None = Field(
        None,
        description="Timestamp when the user record was created (if available).",
    )
