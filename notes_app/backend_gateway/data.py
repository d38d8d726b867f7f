"""Data API wrapper for the ``Note`` model.

Provides a high-level async interface over the backend's model
endpoints.  All network calls are delegated to
:class:`~notes_app.backend_gateway.client.BackendClient`, which handles
authentication and token refresh.

Usage::

    data = DataService(client)
    notes = await data.list_notes()
    note = await data.create_note("Groceries", "milk, eggs")
"""

from __future__ import annotations

import logging
from typing import Any

from notes_app.backend_gateway.client import BackendClient
from notes_app.schemas import Note

logger = logging.getLogger(__name__)


def normalize_list_result(result: Any) -> list[dict]:
    """Return the records of a list response as a plain list.

    Depending on the backend SDK version, list results arrive under
    ``data`` or under ``items``.  Anything else yields an empty list.
    """
    if not isinstance(result, dict):
        return []

    records = result.get("data")
    if records is None:
        records = result.get("items")
    if not records:
        return []
    return list(records)


def unwrap_record(result: Any) -> dict:
    """Return a single record, unwrapping a ``data`` envelope if present."""
    if isinstance(result, dict) and isinstance(result.get("data"), dict):
        return result["data"]
    return result


class DataService:
    """Wrapper around the ``Note`` model endpoints.

    Errors raised by the underlying client (such as
    :class:`~notes_app.backend_gateway.client.BackendApiError`) propagate
    unchanged.

    Args:
        client: A signed-in BackendClient.
        model: Model name in the backend schema.
    """

    def __init__(self, client: BackendClient, model: str = "Note") -> None:
        self._client = client
        self._model = model

    @property
    def _path(self) -> str:
        return f"/data/v1/models/{self._model}"

    async def list_notes(self) -> list[Note]:
        """Retrieve every note owned by the signed-in user.

        Calls ``GET /data/v1/models/{model}``.  Ordering is whatever the
        backend returns.
        """
        result = await self._client.request("GET", self._path)
        notes = [Note.model_validate(record) for record in normalize_list_result(result)]
        logger.debug("Listed %d notes", len(notes))
        return notes

    async def create_note(
        self,
        name: str,
        description: str = "",
        image_key: str | None = None,
    ) -> Note:
        """Create a note record.

        Args:
            name: Note title.
            description: Free text (default empty).
            image_key: Storage key of an already-uploaded image, or ``None``.

        Returns:
            The created note, including its backend-assigned ``id``.
        """
        result = await self._client.request(
            "POST",
            self._path,
            json={"name": name, "description": description, "imageKey": image_key},
        )
        note = Note.model_validate(unwrap_record(result))
        logger.info("Created note %s", note.id)
        return note

    async def delete_note(self, note_id: str) -> None:
        """Delete a note record by id."""
        await self._client.request("DELETE", f"{self._path}/{note_id}")
        logger.info("Deleted note %s", note_id)
