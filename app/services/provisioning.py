"""
Profile provisioning - every identity gets exactly one profile, created lazily.
Challenge: Sign-in events can arrive concurrently for the same identity.
Design: One in-flight task per identity in this process; the profiles primary key
settles races across processes (a duplicate insert counts as success).
"""

import asyncio
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import get_settings
from app.core.errors import ConflictError, NotFoundError
from app.core.session_store import SessionChange, SessionContext, SessionEventType
from app.db.models.profile import Profile
from app.db.repositories.profile_repository import ProfileRepository
from app.schemas.profile import ProfileResponse

logger = logging.getLogger(__name__)

PROVISIONING_EVENTS = {
    SessionEventType.SIGNED_IN,
    SessionEventType.SIGNED_UP,
    SessionEventType.TOKEN_REFRESHED,
}


def default_username(user_id: str, full: bool = False) -> str:
    settings = get_settings()
    compact = user_id.replace("-", "")
    prefix = compact if full else compact[: settings.default_username_id_chars]
    return f"{settings.default_username_prefix}{prefix}"


class ProfileProvisioner:
    """Creates missing profiles. Subscribe on_session_change to a SessionStore."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._in_flight: dict[str, asyncio.Task] = {}

    async def on_session_change(self, change: SessionChange) -> None:
        if change.event in PROVISIONING_EVENTS:
            await self.ensure_profile(change.session)

    async def ensure_profile(self, ctx: SessionContext) -> ProfileResponse:
        """Return the identity's profile, creating it first if absent."""
        task = self._in_flight.get(ctx.user_id)
        if task is None:
            task = asyncio.create_task(self._ensure(ctx.user_id))
            self._in_flight[ctx.user_id] = task
            task.add_done_callback(lambda _t, uid=ctx.user_id: self._in_flight.pop(uid, None))
        return await asyncio.shield(task)

    async def _ensure(self, user_id: str) -> ProfileResponse:
        async with self.session_factory() as session:
            repo = ProfileRepository(session)
            try:
                return await self._lookup(repo, user_id)
            except NotFoundError:
                pass
            try:
                profile = await self._create(session, repo, user_id)
                logger.info("Provisioned profile %s for %s", profile.username, user_id)
                return profile
            except ConflictError:
                await session.rollback()
            try:
                # Lost the race to another writer: the row exists now
                return await self._lookup(repo, user_id)
            except NotFoundError:
                # Short username already belongs to someone else
                return await self._create(session, repo, user_id, default_username(user_id, full=True))

    @staticmethod
    async def _lookup(repo: ProfileRepository, user_id: str) -> ProfileResponse:
        profile = await repo.get_by_id(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        return ProfileResponse.model_validate(profile)

    @staticmethod
    async def _create(
        session: AsyncSession, repo: ProfileRepository, user_id: str, username: str | None = None
    ) -> ProfileResponse:
        try:
            profile = await repo.add(
                Profile(
                    id=user_id,
                    username=username or default_username(user_id),
                    reputation_score=0.0,
                    trades_completed=0,
                )
            )
            await session.commit()
        except IntegrityError as e:
            raise ConflictError("Profile already exists") from e
        return ProfileResponse.model_validate(profile)


_provisioner: ProfileProvisioner | None = None


def get_provisioner() -> ProfileProvisioner:
    """Process-wide provisioner, so concurrent requests share in-flight creations."""
    global _provisioner
    if _provisioner is None:
        from app.db.session import async_session_maker

        _provisioner = ProfileProvisioner(async_session_maker)
    return _provisioner
