"""
FastAPI dependencies - injection for DB, collaborators, auth (SOLID: Dependency Inversion).
Challenge: Reusable auth, consistent error responses.
Design: The resolved SessionContext is handed to every service call explicitly.
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.errors import AuthError
from app.core.session_store import SessionContext, SessionStore, get_session_store
from app.realtime.changes import ChangeChannel, get_change_channel
from app.services.auth_service import current_session
from app.services.provisioning import ProfileProvisioner, get_provisioner
from app.storage.object_store import ObjectStore, get_object_store

security = HTTPBearer(auto_error=False)


async def get_current_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> SessionContext:
    """Resolve bearer JWT to a session. Raises AuthError (401) if missing or invalid."""
    if not credentials:
        raise AuthError("Not authenticated")
    ctx = current_session(credentials.credentials)
    if ctx is None:
        raise AuthError("Invalid or expired token")
    return ctx


# Optional auth: for routes that behave differently when logged in
async def get_optional_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> SessionContext | None:
    """Return the session if a valid token is present, else None."""
    if not credentials:
        return None
    return current_session(credentials.credentials)


CurrentSession = Annotated[SessionContext, Depends(get_current_session)]
OptionalSession = Annotated[SessionContext | None, Depends(get_optional_session)]
Changes = Annotated[ChangeChannel, Depends(get_change_channel)]
Storage = Annotated[ObjectStore, Depends(get_object_store)]
Provisioner = Annotated[ProfileProvisioner, Depends(get_provisioner)]
Sessions = Annotated[SessionStore, Depends(get_session_store)]
