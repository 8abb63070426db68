"""Profile request/response schemas."""

from pydantic import BaseModel, Field

from app.schemas.common import UtcDatetime


class ProfileResponse(BaseModel):
    id: str
    username: str
    avatar_url: str | None = None
    reputation_score: float = Field(0.0, ge=0)
    trades_completed: int = Field(0, ge=0)
    created_at: UtcDatetime

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    avatar_url: str | None = None
