"""Storage API wrapper for note images.

Provides a high-level async interface over the backend's object
storage endpoints:

- **Upload**: Store raw bytes under a key (``PUT /storage/v1/objects/{key}``)
- **Signed URL**: Get a time-limited download URL (``POST /storage/v1/signed-url``)
- **Remove**: Delete an object (``DELETE /storage/v1/objects/{key}``)

All network calls are delegated to
:class:`~notes_app.backend_gateway.client.BackendClient`.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath, PureWindowsPath
from urllib.parse import quote
from uuid import uuid4

from notes_app.backend_gateway.client import BackendClient

logger = logging.getLogger(__name__)


class StorageService:
    """Object storage wrapper.

    Key validation is enforced on all methods.  Keys must be relative
    (must not start with ``/``) and must not contain ``..`` segments.

    Args:
        client: A signed-in BackendClient.
        key_prefix: Folder that new image keys are created under.
        url_expires_in: Lifetime of signed URLs in seconds.
    """

    def __init__(
        self,
        client: BackendClient,
        *,
        key_prefix: str = "notes",
        url_expires_in: int = 900,
    ) -> None:
        self._client = client
        self._key_prefix = key_prefix.strip("/")
        self._url_expires_in = url_expires_in

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def build_key(self, filename: str) -> str:
        """Return a new, globally unique key for an uploaded file.

        The key is ``{prefix}/{uuid4}-{filename}``; any directory part of
        ``filename`` is dropped.
        """
        name = PurePosixPath(PureWindowsPath(filename).name).name or "upload"
        return f"{self._key_prefix}/{uuid4()}-{name}"

    @staticmethod
    def validate_key(key: str) -> bool:
        """Validate a storage key.

        Rules:
        - Must not be empty or whitespace-only.
        - Must be relative (must not start with ``/``).
        - Must not contain ``..`` as a path segment.
        """
        if not key or not key.strip():
            return False

        if key.startswith("/"):
            return False

        return all(segment != ".." for segment in key.split("/"))

    def _ensure_valid_key(self, key: str) -> None:
        if not self.validate_key(key):
            raise ValueError(f"Invalid storage key: {key!r}. Key must be relative and must not contain '..' segments.")

    @staticmethod
    def _object_path(key: str) -> str:
        # File names may carry '#', '?' or '%'; the path must address the whole key.
        return f"/storage/v1/objects/{quote(key, safe='/')}"

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def upload(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> dict:
        """Upload bytes under ``key`` and wait until they are stored.

        Raises:
            ValueError: If ``key`` is invalid.
            BackendApiError: If the upload fails.
        """
        self._ensure_valid_key(key)

        logger.debug("Uploading %d bytes to %r", len(data), key)
        result = await self._client.request(
            "PUT",
            self._object_path(key),
            content=data,
            headers={"Content-Type": content_type or "application/octet-stream"},
        )
        logger.info("Uploaded %r (%d bytes)", key, len(data))
        return result

    async def get_url(self, key: str) -> str | None:
        """Return a signed, time-limited URL for ``key``.

        Returns ``None`` when the backend answers without a URL.
        """
        self._ensure_valid_key(key)

        result = await self._client.request(
            "POST",
            "/storage/v1/signed-url",
            json={"path": key, "expiresIn": self._url_expires_in},
        )
        url = result.get("url") if isinstance(result, dict) else None
        return str(url) if url else None

    async def remove(self, key: str) -> None:
        """Delete the object stored under ``key``."""
        self._ensure_valid_key(key)

        await self._client.request("DELETE", self._object_path(key))
        logger.info("Removed %r", key)
