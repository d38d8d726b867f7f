"""Managed backend API client with session management and token refresh.

This module provides a lightweight async HTTP client for the managed
backend-as-a-service that owns authentication, the ``Note`` data model
and object storage.  It handles:

- Sign-in / sign-out against the Auth API
- Automatic ``Authorization`` and ``x-api-key`` header injection
- Transparent token refresh when the access token expires

Usage::

    async with BackendClient(url, api_key) as client:
        await client.sign_in("alice", "secret")
        body = await client.request("GET", "/data/v1/models/Note")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Error codes the Auth API returns with a 401 when the access token
# is no longer valid but the refresh token may still be.
_SESSION_EXPIRED_CODES: frozenset[str] = frozenset({"TokenExpired", "SessionExpired", "InvalidToken"})


class BackendAuthError(Exception):
    """Raised when authentication with the managed backend fails.

    Attributes:
        code: The error code reported by the backend (e.g. ``NotAuthorized``).
        message: A human-readable description of the failure.
    """

    def __init__(self, code: str, message: str | None = None) -> None:
        self.code = code
        self.message = message or f"Backend authentication failed (error code: {code})"
        super().__init__(self.message)


class BackendApiError(Exception):
    """Raised when a non-auth backend API call fails.

    Attributes:
        status_code: HTTP status of the failed response.
        code: The error code reported by the backend.
        message: A human-readable description.
    """

    def __init__(self, status_code: int, code: str = "", message: str | None = None) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message or f"Backend API error (status: {status_code}, code: {code or 'unknown'})"
        super().__init__(self.message)


@dataclass(frozen=True)
class SessionUser:
    """Identity of the signed-in user as reported by the Auth API."""

    user_id: str
    username: str

    @classmethod
    def from_payload(cls, payload: dict) -> SessionUser:
        return cls(
            user_id=str(payload.get("user_id") or payload.get("sub") or ""),
            username=str(payload.get("username", "")),
        )


def _error_of(response: httpx.Response) -> tuple[str, str | None]:
    """Extract ``(code, message)`` from an error response body."""
    try:
        body = response.json()
    except ValueError:
        return "", None
    if not isinstance(body, dict):
        return "", None
    error = body.get("error") or {}
    if isinstance(error, str):
        return error, None
    return str(error.get("code", "")), error.get("message")


class BackendClient:
    """Async client for the managed backend's REST API.

    The client keeps the access and refresh tokens of one signed-in user
    and refreshes the access token once when the backend reports it as
    expired.

    Args:
        url: Base URL of the backend (trailing slash is stripped).
        api_key: Project API key sent with every request.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, url: str, api_key: str, *, timeout: float = 30.0) -> None:
        self._url: str = url.rstrip("/")
        self._api_key: str = api_key
        self._access_token: str | None = None
        self._refresh_token: str | None = None
        self._client: httpx.AsyncClient = httpx.AsyncClient(timeout=timeout)

    @property
    def is_authenticated(self) -> bool:
        return self._access_token is not None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def sign_in(self, username: str, password: str) -> SessionUser:
        """Sign in and store the session tokens.

        Returns:
            The signed-in :class:`SessionUser`.

        Raises:
            BackendAuthError: If the credentials are rejected.
            BackendApiError: If the Auth API fails for another reason.
        """
        response = await self._client.post(
            f"{self._url}/auth/v1/sign-in",
            json={"username": username, "password": password},
            headers=self._headers(authenticated=False),
        )

        if response.status_code in (400, 401, 403):
            code, message = _error_of(response)
            logger.warning("Backend sign-in failed for user=%s (code=%s)", username, code)
            raise BackendAuthError(code or "NotAuthorized", message)
        if response.status_code >= 400:
            code, message = _error_of(response)
            raise BackendApiError(response.status_code, code, message)

        data = response.json()
        self._access_token = data["access_token"]
        self._refresh_token = data.get("refresh_token")
        user = SessionUser.from_payload(data.get("user") or {"username": username})
        logger.info("Backend sign-in successful for user=%s", user.username)
        return user

    async def refresh_session(self) -> str:
        """Exchange the refresh token for a new access token.

        Raises:
            BackendAuthError: If there is no refresh token or it is rejected.
        """
        if self._refresh_token is None:
            raise BackendAuthError("NotAuthorized", "No refresh token available")

        response = await self._client.post(
            f"{self._url}/auth/v1/refresh",
            json={"refresh_token": self._refresh_token},
            headers=self._headers(authenticated=False),
        )
        if response.status_code >= 400:
            code, message = _error_of(response)
            self._access_token = None
            self._refresh_token = None
            raise BackendAuthError(code or "NotAuthorized", message)

        data = response.json()
        self._access_token = data["access_token"]
        self._refresh_token = data.get("refresh_token", self._refresh_token)
        logger.info("Backend access token refreshed")
        return self._access_token

    async def sign_out(self) -> None:
        """End the current session.

        If there is no active session this is a no-op.  Local tokens are
        cleared even when the sign-out call fails.
        """
        if self._access_token is None:
            return

        try:
            await self._client.post(
                f"{self._url}/auth/v1/sign-out",
                headers=self._headers(),
            )
            logger.info("Backend sign-out completed")
        finally:
            self._access_token = None
            self._refresh_token = None

    # ------------------------------------------------------------------
    # API requests
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Perform an authenticated request against the backend.

        If the backend responds with a session-expired error, the access
        token is refreshed and the request retried **once**.

        Args:
            method: HTTP method.
            path: Path below the base URL (e.g. ``/data/v1/models/Note``).
            json: Optional JSON body.
            params: Optional query parameters.
            content: Optional raw body (used for object uploads).
            headers: Extra headers (e.g. ``Content-Type`` for uploads).

        Returns:
            The decoded JSON body, or ``{}`` when the response has no body.

        Raises:
            BackendAuthError: If there is no session or it cannot be refreshed.
            BackendApiError: If the API returns an error status.
        """
        if self._access_token is None:
            raise BackendAuthError("NotAuthorized", "Not signed in")

        kwargs: dict[str, Any] = {"json": json, "params": params, "content": content, "headers": headers}
        response = await self._raw_request(method, path, **kwargs)

        if response.status_code == 401:
            code, message = _error_of(response)
            if code not in _SESSION_EXPIRED_CODES:
                raise BackendAuthError(code or "NotAuthorized", message)

            logger.info("Session expired (code=%s), refreshing token...", code)
            await self.refresh_session()  # may raise BackendAuthError
            response = await self._raw_request(method, path, **kwargs)

            if response.status_code == 401:
                retry_code, retry_message = _error_of(response)
                raise BackendAuthError(retry_code or "NotAuthorized", retry_message)

        if response.status_code >= 400:
            code, message = _error_of(response)
            raise BackendApiError(response.status_code, code, message)

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    async def _raw_request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send a single request with the current credentials.

        This is an internal helper -- prefer :meth:`request` which
        handles token refresh and error mapping.
        """
        merged = self._headers()
        if headers:
            merged.update(headers)

        kwargs: dict[str, Any] = {"headers": merged}
        if json is not None:
            kwargs["json"] = json
        if params:
            kwargs["params"] = params
        if content is not None:
            kwargs["content"] = content

        return await self._client.request(method, f"{self._url}{path}", **kwargs)

    def _headers(self, *, authenticated: bool = True) -> dict[str, str]:
        headers = {"x-api-key": self._api_key}
        if authenticated and self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Dispose the underlying ``httpx.AsyncClient``."""
        await self._client.aclose()

    async def __aenter__(self) -> BackendClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit the async context: sign out and close."""
        await self.sign_out()
        await self.close()
