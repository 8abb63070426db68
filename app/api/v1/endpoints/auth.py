"""
Auth endpoints - sign up, sign in, refresh, sign out (RESTful API).
Challenge: Secure auth, validation, clear status codes.
"""

from fastapi import APIRouter, status

from app.core.dependencies import CurrentSession, Sessions
from app.core.session_store import SessionContext
from app.db.repositories.account_repository import AccountRepository
from app.db.repositories.profile_repository import ProfileRepository
from app.db.session import DbSession
from app.schemas.auth import SessionResponse, SignInRequest, SignUpRequest
from app.services.auth_service import AuthService

router = APIRouter()


def _get_auth_service(session: DbSession, store: Sessions) -> AuthService:
    return AuthService(AccountRepository(session), ProfileRepository(session), store)


def _to_response(ctx: SessionContext) -> SessionResponse:
    return SessionResponse(
        access_token=ctx.access_token,
        user_id=ctx.user_id,
        email=ctx.email,
        expires_at=ctx.expires_at,
    )


@router.post("/sign-up", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(session: DbSession, store: Sessions, data: SignUpRequest):
    """Create account and profile with the chosen username. Returns a session."""
    svc = _get_auth_service(session, store)
    return _to_response(await svc.sign_up(data.email, data.password, data.username))


@router.post("/sign-in", response_model=SessionResponse)
async def sign_in(session: DbSession, store: Sessions, data: SignInRequest):
    """Authenticate and return JWT."""
    svc = _get_auth_service(session, store)
    return _to_response(await svc.sign_in(data.email, data.password))


@router.post("/refresh", response_model=SessionResponse)
async def refresh(session: DbSession, store: Sessions, ctx: CurrentSession):
    svc = _get_auth_service(session, store)
    return _to_response(await svc.refresh(ctx))


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(session: DbSession, store: Sessions, ctx: CurrentSession):
    svc = _get_auth_service(session, store)
    await svc.sign_out(ctx)


@router.get("/session", response_model=SessionResponse)
async def get_session(ctx: CurrentSession):
    """The session behind the bearer token."""
    return _to_response(ctx)
