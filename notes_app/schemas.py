"""Pydantic v2 schemas for notes.

- Note: A note record owned by the backend's Data API
- DisplayNote: A note enriched with a resolved, time-limited image URL
- ImageFile: An image attached to the create form
- NoteForm: The create-form draft kept on the controller
- NoteListView: Render state of the note list page
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Note(BaseModel):
    """A note record as stored by the Data API.

    Attributes:
        id: Identifier assigned by the backend on creation.
        name: Note title (required, non-empty).
        description: Free text; ``None`` from the backend becomes ``""``.
        image_key: Storage key of the attached image, if any.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    description: str = ""
    image_key: str | None = Field(default=None, alias="imageKey")

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


class DisplayNote(Note):
    """A :class:`Note` plus the image URL resolved at fetch time.

    Never persisted; rebuilt on every list fetch.
    """

    image_url: str | None = Field(default=None, alias="imageUrl")

    @classmethod
    def from_note(cls, note: Note, image_url: str | None = None) -> DisplayNote:
        return cls(**note.model_dump(), image_url=image_url)


@dataclass(frozen=True)
class ImageFile:
    name: str
    content_type: str
    data: bytes


@dataclass(frozen=True)
class NoteForm:
    name: str = ""
    description: str = ""
    image_file: ImageFile | None = None


class NoteFormState(BaseModel):
    name: str = ""
    description: str = ""
    image_name: str | None = None


class NoteListView(BaseModel):
    """Everything the client needs to render the notes page."""

    user: str | None = None
    notes: list[DisplayNote]
    loading: bool
    creating: bool
    empty: bool
    refresh_label: str
    submit_label: str
    form: NoteFormState
