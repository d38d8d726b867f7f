"""In-memory registry of signed-in browser sessions.

Each session owns its own signed-in :class:`BackendClient` and its own
:class:`NoteListController`, mirroring one mounted notes page per user.
Sessions live as long as the access token issued for them; expired ones
are no longer returned and are closed on the next sign-in.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache

from notes_app.backend_gateway.auth import AuthService
from notes_app.backend_gateway.client import BackendClient, SessionUser
from notes_app.backend_gateway.data import DataService
from notes_app.backend_gateway.outputs import create_client
from notes_app.backend_gateway.storage import StorageService
from notes_app.config import get_settings
from notes_app.services.note_list_controller import NoteListController

logger = logging.getLogger(__name__)


@dataclass
class UserSession:
    session_id: str
    user: SessionUser
    client: BackendClient
    auth: AuthService
    controller: NoteListController
    expires_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(UTC)) >= self.expires_at


class SessionRegistry:
    """Signed-in sessions by id.

    Args:
        ttl: Session lifetime.  Falls back to the access token lifetime.
    """

    def __init__(self, ttl: timedelta | None = None) -> None:
        self._sessions: dict[str, UserSession] = {}
        self._ttl = ttl

    def __len__(self) -> int:
        return len(self._sessions)

    async def open(self, username: str, password: str) -> UserSession:
        """Sign in against the backend and register a new session.

        Expired sessions are closed first.

        Raises:
            BackendAuthError: If the backend rejects the credentials.
        """
        await self.evict_expired()

        settings = get_settings()
        ttl = self._ttl if self._ttl is not None else timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
        client = create_client()
        auth = AuthService(client)
        try:
            user = await auth.sign_in(username, password)
        except Exception:
            await client.close()
            raise

        controller = NoteListController(
            DataService(client),
            StorageService(
                client,
                key_prefix=settings.STORAGE_KEY_PREFIX,
                url_expires_in=settings.SIGNED_URL_EXPIRES_IN,
            ),
        )
        session = UserSession(
            session_id=secrets.token_urlsafe(24),
            user=user,
            client=client,
            auth=auth,
            controller=controller,
            expires_at=datetime.now(UTC) + ttl,
        )
        self._sessions[session.session_id] = session
        logger.info("Session opened for user=%s", user.username)
        return session

    def get(self, session_id: str) -> UserSession | None:
        """Return a live session, or ``None`` if it is unknown or expired."""
        session = self._sessions.get(session_id)
        if session is None or session.is_expired():
            return None
        return session

    async def close(self, session_id: str) -> None:
        """Sign out and forget a session.  Unknown ids are ignored."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        try:
            await session.auth.sign_out()
        finally:
            await session.client.close()
        logger.info("Session closed for user=%s", session.user.username)

    async def evict_expired(self) -> int:
        """Close every expired session and return how many were closed."""
        now = datetime.now(UTC)
        expired = [sid for sid, session in self._sessions.items() if session.is_expired(now)]
        for session_id in expired:
            try:
                await self.close(session_id)
            except Exception:
                logger.warning("Failed to close expired session cleanly", exc_info=True)
        if expired:
            logger.info("Evicted %d expired session(s)", len(expired))
        return len(expired)

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            try:
                await self.close(session_id)
            except Exception:
                logger.warning("Failed to close session cleanly", exc_info=True)


@lru_cache
def get_session_registry() -> SessionRegistry:
    """Return the process-wide session registry."""
    return SessionRegistry()
