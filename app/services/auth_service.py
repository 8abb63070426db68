"""
Auth service - sign up, sign in, refresh and sign out against the account store.
Challenge: Every outcome is announced on the SessionStore so dependents (profile
provisioning) react without being called directly.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from app.core.errors import AuthError
from app.core.security import create_access_token, decode_access_token, hash_password, verify_password
from app.core.session_store import SessionChange, SessionContext, SessionEventType, SessionStore
from app.db.models.account import Account
from app.db.models.profile import Profile
from app.db.repositories.account_repository import AccountRepository
from app.db.repositories.profile_repository import ProfileRepository

logger = logging.getLogger(__name__)


def issue_session(user_id: str, email: str) -> SessionContext:
    token, expires_at = create_access_token(user_id, email)
    return SessionContext(user_id=user_id, email=email, access_token=token, expires_at=expires_at)


def current_session(token: str | None) -> SessionContext | None:
    """Decode a bearer token. None when missing, expired or forged."""
    if not token:
        return None
    payload = decode_access_token(token)
    if not payload or "sub" not in payload or "exp" not in payload:
        return None
    return SessionContext(
        user_id=str(payload["sub"]),
        email=payload.get("email", ""),
        access_token=token,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


class AuthService:
    def __init__(self, account_repo: AccountRepository, profile_repo: ProfileRepository, store: SessionStore):
        self.account_repo = account_repo
        self.profile_repo = profile_repo
        self.store = store

    async def sign_up(self, email: str, password: str, username: str) -> SessionContext:
        """Create account and profile in one unit of work, then announce the session."""
        email = email.lower()
        if await self.profile_repo.get_by_username(username):
            raise AuthError("Username is already taken")
        if await self.account_repo.get_by_email(email):
            raise AuthError("Email already registered")

        session = self.account_repo.session
        try:
            account = await self.account_repo.add(
                Account(email=email, hashed_password=hash_password(password))
            )
            await self.profile_repo.add(
                Profile(id=account.id, username=username, reputation_score=0.0, trades_completed=0)
            )
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            logger.warning("Sign-up race for %s / %s: %s", email, username, e.orig)
            raise AuthError("Username or email is already taken") from e

        ctx = issue_session(account.id, account.email)
        await self.store.publish(SessionChange(SessionEventType.SIGNED_UP, ctx))
        return ctx

    async def sign_in(self, email: str, password: str) -> SessionContext:
        account = await self.account_repo.get_by_email(email)
        if not account or not verify_password(password, account.hashed_password):
            raise AuthError("Invalid email or password")
        ctx = issue_session(account.id, account.email)
        await self.store.publish(SessionChange(SessionEventType.SIGNED_IN, ctx))
        return ctx

    async def refresh(self, ctx: SessionContext) -> SessionContext:
        account = await self.account_repo.get_by_id(ctx.user_id)
        if not account:
            raise AuthError("Account no longer exists")
        fresh = issue_session(account.id, account.email)
        await self.store.publish(SessionChange(SessionEventType.TOKEN_REFRESHED, fresh))
        return fresh

    async def sign_out(self, ctx: SessionContext) -> None:
        await self.store.publish(SessionChange(SessionEventType.SIGNED_OUT, ctx))
