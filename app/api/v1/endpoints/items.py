"""
Item endpoints - listing reads, creation and image upload.
Design: Thin controller; service layer holds business logic.
"""

from fastapi import APIRouter, File, UploadFile, status

from app.core.dependencies import Changes, CurrentSession, Provisioner, Storage
from app.db.repositories.item_repository import ItemRepository
from app.db.session import DbSession
from app.schemas.item import ImageUploadResponse, ItemCreate, ItemWithOwnerResponse
from app.services.item_service import ItemService

router = APIRouter()


def _get_item_service(
    session: DbSession, changes: Changes, store: Storage, provisioner: Provisioner
) -> ItemService:
    """Factory for service with repository injection (Dependency Inversion)."""
    return ItemService(ItemRepository(session), changes, store, provisioner)


@router.get("", response_model=list[ItemWithOwnerResponse])
async def list_items(session: DbSession, changes: Changes, store: Storage, provisioner: Provisioner):
    """All available listings, newest first. Search and category filtering happen in the view."""
    svc = _get_item_service(session, changes, store, provisioner)
    return await svc.list_available()


@router.get("/categories", response_model=list[str])
async def list_categories(session: DbSession, changes: Changes, store: Storage, provisioner: Provisioner):
    svc = _get_item_service(session, changes, store, provisioner)
    return await svc.list_categories()


@router.get("/mine", response_model=list[ItemWithOwnerResponse])
async def list_my_items(
    session: DbSession, changes: Changes, store: Storage, provisioner: Provisioner, ctx: CurrentSession
):
    """Caller's available listings, for building a trade offer."""
    svc = _get_item_service(session, changes, store, provisioner)
    return await svc.list_mine(ctx)


@router.get("/{item_id}", response_model=ItemWithOwnerResponse)
async def get_item(session: DbSession, changes: Changes, store: Storage, provisioner: Provisioner, item_id: str):
    svc = _get_item_service(session, changes, store, provisioner)
    return await svc.get_by_id(item_id)


@router.post("", response_model=ItemWithOwnerResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    session: DbSession,
    changes: Changes,
    store: Storage,
    provisioner: Provisioner,
    ctx: CurrentSession,
    data: ItemCreate,
):
    """Create listing owned by the caller. Images must be uploaded first."""
    svc = _get_item_service(session, changes, store, provisioner)
    return await svc.create(ctx, data)


@router.post("/images", response_model=ImageUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_item_image(
    session: DbSession,
    changes: Changes,
    store: Storage,
    provisioner: Provisioner,
    ctx: CurrentSession,
    file: UploadFile = File(...),
):
    svc = _get_item_service(session, changes, store, provisioner)
    return await svc.upload_image(ctx, file.filename, file.content_type, await file.read())
