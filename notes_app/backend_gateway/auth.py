"""Auth API wrapper for the managed backend.

All network calls are delegated to
:class:`~notes_app.backend_gateway.client.BackendClient`, which keeps
the session tokens.
"""

from __future__ import annotations

import logging

from notes_app.backend_gateway.client import BackendAuthError, BackendClient, SessionUser

logger = logging.getLogger(__name__)


class AuthService:
    """Sign-in, sign-out and current-session query.

    Args:
        client: The per-user BackendClient.
    """

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def sign_in(self, username: str, password: str) -> SessionUser:
        return await self._client.sign_in(username, password)

    async def sign_out(self) -> None:
        await self._client.sign_out()

    async def current_session(self) -> SessionUser | None:
        """Return the signed-in user, or ``None`` when unauthenticated.

        Calls ``GET /auth/v1/session``.  A missing or rejected session is
        reported as ``None`` rather than an error; other API errors
        propagate.
        """
        if not self._client.is_authenticated:
            return None

        try:
            data = await self._client.request("GET", "/auth/v1/session")
        except BackendAuthError as exc:
            logger.info("No active backend session (code=%s)", exc.code)
            return None

        user = data.get("user") if isinstance(data, dict) else None
        if not user:
            return None
        return SessionUser.from_payload(user)
