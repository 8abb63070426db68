"""
Profile endpoints - own profile (created on first read), public profiles, avatar upload.
"""

from fastapi import APIRouter, File, UploadFile

from app.core.dependencies import CurrentSession, Provisioner, Storage
from app.db.repositories.profile_repository import ProfileRepository
from app.db.session import DbSession
from app.schemas.profile import ProfileResponse, ProfileUpdate
from app.services.profile_service import ProfileService

router = APIRouter()


def _get_profile_service(session: DbSession, provisioner: Provisioner, store: Storage) -> ProfileService:
    return ProfileService(ProfileRepository(session), provisioner, store)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(session: DbSession, provisioner: Provisioner, store: Storage, ctx: CurrentSession):
    svc = _get_profile_service(session, provisioner, store)
    return await svc.get_mine(ctx)


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    session: DbSession, provisioner: Provisioner, store: Storage, ctx: CurrentSession, data: ProfileUpdate
):
    svc = _get_profile_service(session, provisioner, store)
    return await svc.update(ctx, data)


@router.post("/me/avatar", response_model=ProfileResponse)
async def upload_avatar(
    session: DbSession,
    provisioner: Provisioner,
    store: Storage,
    ctx: CurrentSession,
    file: UploadFile = File(...),
):
    svc = _get_profile_service(session, provisioner, store)
    return await svc.upload_avatar(ctx, file.filename, file.content_type, await file.read())


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(session: DbSession, provisioner: Provisioner, store: Storage, profile_id: str):
    svc = _get_profile_service(session, provisioner, store)
    return await svc.get(profile_id)
