"""
Profile service - own profile (auto-provisioned), public profiles, self-edit and avatars.
"""

import logging

from sqlalchemy.exc import IntegrityError

from app.core.errors import AuthError, NotFoundError, ValidationError
from app.core.session_store import SessionContext
from app.db.base import utcnow
from app.db.repositories.profile_repository import ProfileRepository
from app.schemas.profile import ProfileResponse, ProfileUpdate
from app.services.provisioning import ProfileProvisioner
from app.storage.object_store import ObjectStore, object_path

logger = logging.getLogger(__name__)

AVATARS_BUCKET = "avatars"


class ProfileService:
    def __init__(
        self,
        profile_repo: ProfileRepository,
        provisioner: ProfileProvisioner,
        store: ObjectStore | None = None,
    ):
        self.profile_repo = profile_repo
        self.provisioner = provisioner
        self.store = store

    async def get_mine(self, ctx: SessionContext) -> ProfileResponse:
        """A missing profile here is the provisioning trigger, not an error."""
        profile = await self.profile_repo.get_by_id(ctx.user_id)
        if profile is None:
            logger.info("No profile for %s yet, provisioning", ctx.user_id)
            return await self.provisioner.ensure_profile(ctx)
        return ProfileResponse.model_validate(profile)

    async def get(self, profile_id: str) -> ProfileResponse:
        profile = await self.profile_repo.get_by_id(profile_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        return ProfileResponse.model_validate(profile)

    async def update(self, ctx: SessionContext, data: ProfileUpdate) -> ProfileResponse:
        await self.get_mine(ctx)
        profile = await self.profile_repo.get_by_id(ctx.user_id)
        if data.username is not None and data.username != profile.username:
            taken = await self.profile_repo.get_by_username(data.username)
            if taken is not None:
                raise AuthError("Username is already taken")
            profile.username = data.username
        if "avatar_url" in data.model_fields_set:
            profile.avatar_url = data.avatar_url
        profile.updated_at = utcnow()
        try:
            await self.profile_repo.session.flush()
            await self.profile_repo.session.commit()
        except IntegrityError as e:
            await self.profile_repo.session.rollback()
            raise AuthError("Username is already taken") from e
        await self.profile_repo.session.refresh(profile)
        return ProfileResponse.model_validate(profile)

    async def upload_avatar(
        self, ctx: SessionContext, filename: str, content_type: str | None, data: bytes
    ) -> ProfileResponse:
        """Store the image, then point the profile at it."""
        if not content_type or not content_type.startswith("image/"):
            raise ValidationError("Avatar must be an image")
        path = object_path(ctx.user_id, filename or "avatar")
        await self.store.upload(AVATARS_BUCKET, path, data)
        url = self.store.public_url(AVATARS_BUCKET, path)
        return await self.update(ctx, ProfileUpdate(avatar_url=url))
