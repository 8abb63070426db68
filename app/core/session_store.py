"""
Session store - the authenticated identity as an explicit context object.
Challenge: No ambient "current user"; every service call receives a SessionContext,
and dependents (profile provisioning) learn about sign-in/out through subscriptions.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionContext:
    """Authenticated identity passed explicitly through every call."""

    user_id: str
    email: str
    access_token: str
    expires_at: datetime


class SessionEventType(str, Enum):
    SIGNED_IN = "signed_in"
    SIGNED_UP = "signed_up"
    TOKEN_REFRESHED = "token_refreshed"
    SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class SessionChange:
    event: SessionEventType
    session: SessionContext


SessionListener = Callable[[SessionChange], Awaitable[None]]


class SessionStore:
    """Publish/subscribe hub for session changes. Keeps the last session seen per identity."""

    def __init__(self) -> None:
        self._listeners: list[SessionListener] = []
        self._sessions: dict[str, SessionContext] = {}

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener. Returns the matching unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def current(self, user_id: str) -> SessionContext | None:
        return self._sessions.get(user_id)

    async def publish(self, change: SessionChange) -> None:
        """Record the change and notify every listener. A failing listener is logged, not raised."""
        if change.event == SessionEventType.SIGNED_OUT:
            self._sessions.pop(change.session.user_id, None)
        else:
            self._sessions[change.session.user_id] = change.session

        results = await asyncio.gather(
            *(listener(change) for listener in list(self._listeners)),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.error(
                    "Session listener failed for %s (%s): %s",
                    change.session.user_id, change.event.value, result,
                )


_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    """Process-wide session store. Used as FastAPI dependency."""
    global _store
    if _store is None:
        _store = SessionStore()
    return _store
