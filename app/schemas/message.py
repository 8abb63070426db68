"""Message request/response schemas."""

from pydantic import BaseModel, Field

from app.schemas.common import UtcDatetime


class MessageCreate(BaseModel):
    content: str = Field(..., max_length=4000)


class MessageRecord(BaseModel):
    id: str
    trade_request_id: str
    sender_id: str
    content: str
    created_at: UtcDatetime

    model_config = {"from_attributes": True}
