"""Note list state for one signed-in session.

The controller owns the in-memory list of :class:`DisplayNote` shown to
the user and the create-form draft.  Its operations:

1. **fetch_notes** -- list notes, resolve image URLs concurrently, replace
   the list wholesale.
2. **create_note** -- upload the attached image (if any), then create the
   record, then refetch.
3. **delete_note** -- remove the note from the list immediately, then
   delete it on the backend; on failure refetch to re-sync.

The list is only ever replaced or filtered, never edited in place, so
readers always see a consistent snapshot.  Overlapping fetches are
generation-stamped: a fetch result is applied only if no later-started
fetch has already applied its own result.
"""

from __future__ import annotations

import asyncio
import logging

from notes_app.backend_gateway.data import DataService
from notes_app.backend_gateway.storage import StorageService
from notes_app.schemas import DisplayNote, Note, NoteForm, NoteFormState, NoteListView

logger = logging.getLogger(__name__)


class NoteListController:
    """List synchronisation and optimistic mutations for one session.

    Args:
        data: Data API wrapper for the session's user.
        storage: Storage API wrapper for the session's user.
    """

    def __init__(self, data: DataService, storage: StorageService) -> None:
        self._data = data
        self._storage = storage
        self.notes: list[DisplayNote] = []
        self.form = NoteForm()
        self.creating = False
        self.mounted = False
        self._in_flight = 0
        self._generation = 0
        self._applied_generation = 0

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> None:
        """Run the one automatic fetch of this session; later calls do nothing."""
        if self.mounted:
            return
        self.mounted = True
        await self.fetch_notes()

    # ------------------------------------------------------------------
    # List
    # ------------------------------------------------------------------

    async def fetch_notes(self) -> list[DisplayNote]:
        """Reload the list from the Data API and resolve image URLs.

        Errors from the list call propagate.  Per-note URL failures are
        logged and turned into ``image_url=None``.

        Returns:
            The current list after this fetch.
        """
        self._generation += 1
        generation = self._generation
        self._in_flight += 1
        try:
            notes = await self._data.list_notes()
            display = await self._with_display_urls(notes)
        finally:
            self._in_flight -= 1

        if generation <= self._applied_generation:
            logger.debug(
                "Discarding stale note list (generation %d, applied %d)", generation, self._applied_generation
            )
            return self.notes

        self._applied_generation = generation
        self.notes = display
        return self.notes

    async def _with_display_urls(self, notes: list[Note]) -> list[DisplayNote]:
        return list(await asyncio.gather(*(self._resolve(note) for note in notes)))

    async def _resolve(self, note: Note) -> DisplayNote:
        if not note.image_key:
            return DisplayNote.from_note(note)
        try:
            url = await self._storage.get_url(note.image_key)
        except Exception:
            logger.warning("Could not resolve image URL for note %s", note.id, exc_info=True)
            url = None
        return DisplayNote.from_note(note, image_url=url)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_note(self, form: NoteForm | None = None) -> Note | None:
        """Create a note from the form draft.

        A blank name is a silent no-op.  The image, if attached, is fully
        uploaded before the record referencing it is created.  On success
        the draft is reset and the list refetched; on failure the draft is
        kept and the error propagates.

        Args:
            form: Replaces the current draft before submitting.

        Returns:
            The created note, or ``None`` for a blank name.
        """
        if form is not None:
            self.form = form

        name = (self.form.name or "").strip()
        if not name:
            return None

        self.creating = True
        try:
            image_key = None
            image = self.form.image_file
            if image is not None:
                key = self._storage.build_key(image.name)
                await self._storage.upload(key, image.data, content_type=image.content_type)
                image_key = key

            note = await self._data.create_note(
                name=name,
                description=(self.form.description or "").strip(),
                image_key=image_key,
            )

            self.form = NoteForm()
            await self.fetch_notes()
            return note
        finally:
            self.creating = False

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete_note(self, note: Note) -> bool:
        """Delete a note, hiding it from the list right away.

        Image cleanup is best effort.  If the record delete fails the list
        is refetched, which brings the note back if it still exists.

        Returns:
            ``True`` if the backend confirmed the delete.
        """
        self.notes = [n for n in self.notes if n.id != note.id]

        try:
            await self._data.delete_note(note.id)
            if note.image_key:
                try:
                    await self._storage.remove(note.image_key)
                except Exception:
                    logger.warning("Could not remove image %r of note %s", note.image_key, note.id)
        except Exception:
            logger.warning("Delete of note %s failed, re-syncing list", note.id, exc_info=True)
            await self.fetch_notes()
            return False
        return True

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def find(self, note_id: str) -> DisplayNote | None:
        return next((n for n in self.notes if n.id == note_id), None)

    def view(self, user: str | None = None) -> NoteListView:
        image = self.form.image_file
        return NoteListView(
            user=user,
            notes=self.notes,
            loading=self.loading,
            creating=self.creating,
            empty=not self.notes and not self.loading,
            refresh_label="Refreshing…" if self.loading else "Refresh",
            submit_label="Creating…" if self.creating else "Create Note",
            form=NoteFormState(
                name=self.form.name,
                description=self.form.description,
                image_name=image.name if image else None,
            ),
        )
