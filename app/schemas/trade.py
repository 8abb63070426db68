"""Trade request/response schemas."""

from enum import Enum

from pydantic import BaseModel, Field

from app.schemas.common import UtcDatetime


class TradeStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not TradeStatus.PENDING


class TradeAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class TradeBox(str, Enum):
    RECEIVED = "received"
    SENT = "sent"


class TradeCreate(BaseModel):
    receiver_id: str
    requester_items: list[str] = Field(..., min_length=1)
    receiver_items: list[str] = Field(..., min_length=1)


class TradeRecord(BaseModel):
    """Validated trade row; what the negotiation rules operate on."""

    id: str
    requester_id: str
    receiver_id: str
    requester_items: list[str]
    receiver_items: list[str]
    status: TradeStatus
    created_at: UtcDatetime
    updated_at: UtcDatetime

    model_config = {"from_attributes": True}


class TradeItemSummary(BaseModel):
    id: str
    title: str | None = None
    estimated_value: float | None = None


class TradeResponse(TradeRecord):
    requester_username: str | None = None
    receiver_username: str | None = None
    requester_item_details: list[TradeItemSummary] = Field(default_factory=list)
    receiver_item_details: list[TradeItemSummary] = Field(default_factory=list)
