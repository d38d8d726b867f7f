"""Notes API endpoints.

Every endpoint acts on the signed-in session's
:class:`~notes_app.services.note_list_controller.NoteListController`.

Endpoints:
- ``GET    /notes``            -- Current note list (first call loads it)
- ``POST   /notes/refresh``    -- Reload the list from the backend
- ``POST   /notes``            -- Create a note (multipart, optional image)
- ``DELETE /notes/{note_id}``  -- Delete a note
- ``GET    /notes/view``       -- Render state of the notes page
"""

from __future__ import annotations

import logging

import httpx

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel

from notes_app.backend_gateway.client import BackendApiError, BackendAuthError
from notes_app.schemas import DisplayNote, ImageFile, Note, NoteForm, NoteListView
from notes_app.services.auth_service import get_current_session
from notes_app.services.note_list_controller import NoteListController
from notes_app.services.session_registry import UserSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notes"])

_GATEWAY_ERRORS = (BackendApiError, BackendAuthError, httpx.HTTPError)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class NoteListResponse(BaseModel):
    items: list[DisplayNote]
    total: int
    loading: bool = False


class NoteCreateResponse(BaseModel):
    created: bool
    note: Note | None = None
    items: list[DisplayNote]


class NoteDeleteResponse(BaseModel):
    deleted: bool
    items: list[DisplayNote]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_controller(
    session: UserSession = Depends(get_current_session),  # noqa: B008
) -> NoteListController:
    return session.controller


def _list_response(controller: NoteListController) -> NoteListResponse:
    return NoteListResponse(items=controller.notes, total=len(controller.notes), loading=controller.loading)


def _gateway_error(exc: Exception) -> HTTPException:
    """Translate a backend gateway error into an HTTP error."""
    if isinstance(exc, BackendAuthError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Backend session expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if isinstance(exc, BackendApiError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Backend error: {exc.message}")
    logger.warning("Backend unreachable: %s", exc)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Backend unavailable")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/notes", response_model=NoteListResponse)
async def list_notes(
    controller: NoteListController = Depends(_get_controller),  # noqa: B008
) -> NoteListResponse:
    """Return the session's note list, loading it on first access."""
    try:
        await controller.mount()
    except _GATEWAY_ERRORS as exc:
        raise _gateway_error(exc) from None
    return _list_response(controller)


@router.post("/notes/refresh", response_model=NoteListResponse)
async def refresh_notes(
    controller: NoteListController = Depends(_get_controller),  # noqa: B008
) -> NoteListResponse:
    try:
        await controller.fetch_notes()
    except _GATEWAY_ERRORS as exc:
        raise _gateway_error(exc) from None
    return _list_response(controller)


@router.post("/notes", response_model=NoteCreateResponse)
async def create_note(
    name: str = Form(""),
    description: str = Form(""),
    image: UploadFile | None = File(None),  # noqa: B008
    controller: NoteListController = Depends(_get_controller),  # noqa: B008
) -> NoteCreateResponse:
    """Create a note, uploading ``image`` first when one is attached.

    A blank name is accepted and ignored (``created: false``).
    """
    image_file = None
    if image is not None and image.filename:
        image_file = ImageFile(
            name=image.filename,
            content_type=image.content_type or "application/octet-stream",
            data=await image.read(),
        )

    # No await between this check and create_note() setting the flag.
    if controller.creating:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A note is already being created")

    try:
        note = await controller.create_note(NoteForm(name=name, description=description, image_file=image_file))
    except _GATEWAY_ERRORS as exc:
        logger.error("Note creation failed: %s", exc)
        raise _gateway_error(exc) from None

    return NoteCreateResponse(created=note is not None, note=note, items=controller.notes)


@router.delete("/notes/{note_id}", response_model=NoteDeleteResponse)
async def delete_note(
    note_id: str,
    controller: NoteListController = Depends(_get_controller),  # noqa: B008
) -> NoteDeleteResponse:
    """Delete a note from the current list.

    A failed backend delete is not an error here: the list is re-synced
    and returned with ``deleted: false``.
    """
    note = controller.find(note_id)
    if note is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Note not found: {note_id}")

    try:
        deleted = await controller.delete_note(note)
    except _GATEWAY_ERRORS as exc:
        raise _gateway_error(exc) from None

    return NoteDeleteResponse(deleted=deleted, items=controller.notes)


@router.get("/notes/view", response_model=NoteListView)
async def notes_view(
    session: UserSession = Depends(get_current_session),  # noqa: B008
) -> NoteListView:
    try:
        await session.controller.mount()
    except _GATEWAY_ERRORS as exc:
        raise _gateway_error(exc) from None
    return session.controller.view(user=session.user.username)
