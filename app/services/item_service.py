"""
Item service - business logic for listings (SOLID: Single Responsibility).
Challenge: Orchestrate repository, object store and change notifications; keep controllers thin.
Design: Service depends on abstractions (repositories); easy to test with mocks.
"""

import logging

from app.config import get_settings
from app.core.errors import NotFoundError, UnknownError, ValidationError
from app.core.session_store import SessionContext
from app.db.models.item import Item
from app.db.repositories.item_repository import AVAILABLE, ItemRepository
from app.realtime.changes import ChangeChannel, ChangeEvent, ChangeType
from app.schemas.item import ImageUploadResponse, ItemCreate, ItemResponse, ItemWithOwnerResponse
from app.services.provisioning import ProfileProvisioner
from app.storage.object_store import ObjectStore, object_path

logger = logging.getLogger(__name__)

ITEMS_BUCKET = "items"


def _item_to_response(item: Item) -> ItemWithOwnerResponse:
    """Map model to API response with owner details."""
    try:
        resp = ItemWithOwnerResponse.model_validate(item)
    except ValueError as e:
        logger.error("Malformed item row %s: %s", item.id, e)
        raise UnknownError("Item data is malformed") from e
    owner = item.__dict__.get("owner")  # only when eagerly loaded
    if owner is not None:
        resp.owner_username = owner.username
        resp.owner_reputation = owner.reputation_score
        resp.owner_trades_completed = owner.trades_completed
    return resp


class ItemService:
    """Handles listing use cases: create, read, image upload."""

    def __init__(
        self,
        item_repo: ItemRepository,
        changes: ChangeChannel,
        store: ObjectStore | None = None,
        provisioner: ProfileProvisioner | None = None,
    ):
        self.item_repo = item_repo
        self.changes = changes
        self.store = store
        self.provisioner = provisioner

    async def create(self, ctx: SessionContext, data: ItemCreate) -> ItemWithOwnerResponse:
        """Validate, persist, then announce the new listing to live feeds."""
        settings = get_settings()
        title = data.title.strip()
        if not title:
            raise ValidationError("Title is required")
        if not data.images:
            raise ValidationError("Please add at least one image")
        if len(data.images) > settings.max_images_per_item:
            raise ValidationError(f"A listing can have at most {settings.max_images_per_item} images")
        if self.provisioner is not None:
            await self.provisioner.ensure_profile(ctx)

        item = await self.item_repo.add(
            Item(
                user_id=ctx.user_id,
                title=title,
                description=data.description.strip(),
                condition=data.condition.value,
                category=data.category.value,
                estimated_value=data.estimated_value,
                images=list(data.images),
                status=AVAILABLE,
            )
        )
        await self.item_repo.session.commit()
        # Reload with owner loaded to avoid lazy load in async context (MissingGreenlet)
        item = await self.item_repo.get_by_id_with_owner(item.id)
        resp = _item_to_response(item)
        logger.info("Item %s listed by %s", resp.id, ctx.user_id)
        await self.changes.publish(
            ChangeEvent(
                collection="items",
                type=ChangeType.INSERT,
                record=ItemResponse.model_validate(resp.model_dump()).model_dump(mode="json"),
            )
        )
        return resp

    async def upload_image(
        self, ctx: SessionContext, filename: str, content_type: str | None, data: bytes
    ) -> ImageUploadResponse:
        """Store one image and return its public URL. Not tied to any listing yet."""
        if not content_type or not content_type.startswith("image/"):
            raise ValidationError("Only image files can be uploaded")
        path = object_path(ctx.user_id, filename or "image")
        await self.store.upload(ITEMS_BUCKET, path, data)
        return ImageUploadResponse(url=self.store.public_url(ITEMS_BUCKET, path), path=path)

    async def get_by_id(self, id: str) -> ItemWithOwnerResponse:
        item = await self.item_repo.get_by_id_with_owner(id)
        if not item:
            raise NotFoundError("Item not found")
        return _item_to_response(item)

    async def list_available(self) -> list[ItemWithOwnerResponse]:
        """Every available listing, newest first (no pagination)."""
        items = await self.item_repo.list_available()
        return [_item_to_response(i) for i in items]

    async def list_categories(self) -> list[str]:
        return await self.item_repo.available_categories()

    async def list_mine(self, ctx: SessionContext) -> list[ItemWithOwnerResponse]:
        """Caller's own available listings (what they can offer in a trade)."""
        items = await self.item_repo.list_by_owner(ctx.user_id)
        return [_item_to_response(i) for i in items]
