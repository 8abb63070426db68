"""Item request/response schemas - REST API contract."""

from enum import Enum

from pydantic import BaseModel, Field

from app.schemas.common import UtcDatetime


class ItemCondition(str, Enum):
    NEW = "New"
    LIKE_NEW = "Like New"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


class ItemCategory(str, Enum):
    ELECTRONICS = "Electronics"
    FASHION = "Fashion"
    BOOKS = "Books"
    SPORTS = "Sports"
    HOME = "Home"
    GAMES = "Games"
    OTHER = "Other"


class ItemStatus(str, Enum):
    AVAILABLE = "available"
    TRADED = "traded"


class ItemBase(BaseModel):
    title: str = Field(..., max_length=255)
    description: str = ""
    condition: ItemCondition
    category: ItemCategory
    estimated_value: float = Field(0, ge=0)
    images: list[str] = Field(default_factory=list)


class ItemCreate(ItemBase):
    pass


class ItemResponse(ItemBase):
    id: str
    user_id: str
    status: ItemStatus
    created_at: UtcDatetime
    updated_at: UtcDatetime

    model_config = {"from_attributes": True}


class ItemWithOwnerResponse(ItemResponse):
    owner_username: str | None = None  # Populated by service layer
    owner_reputation: float | None = None
    owner_trades_completed: int | None = None


class ImageUploadResponse(BaseModel):
    url: str
    path: str
