# roster/schemas/notes.py
from datetime import datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel


class Note(SQLModel):
    """Private note kept in the local store only."""

    id: str
    title: str
    content: str = ""
    created_at: datetime
    updated_at: datetime


class NoteWrite(SQLModel):
    model_config = ConfigDict(extra="forbid")

    title: str = ""
    content: str = ""
