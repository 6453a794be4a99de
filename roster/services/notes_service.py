# roster/services/notes_service.py
import json
import logging
import uuid
from datetime import datetime, timezone

from roster.core.errors import NotFound
from roster.core.local_store import LocalStore
from roster.core.outcome import Outcome
from roster.schemas.notes import Note

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"


class PrivateNotes:
    """
    Local-only notes under a single local store key.

    Not tied to the signed-in identity and never sent to the remote store.
    Newest notes come first; editing a note keeps its position.
    """

    def __init__(self, store: LocalStore, key: str = "privateNotes"):
        self.store = store
        self.key = key

    async def _write(self, notes: list[Note]) -> None:
        payload = [note.model_dump(mode="json") for note in notes]
        await self.store.set_item(self.key, json.dumps(payload))

    async def list(self) -> list[Note]:
        raw = await self.store.get_item(self.key)
        if not raw:
            return []
        try:
            items = json.loads(raw)
            return [Note.model_validate(item) for item in items]
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding unreadable notes under '{self.key}': {e}")
            return []

    async def save(
        self,
        title: str,
        content: str,
        note_id: str | None = None,
    ) -> Outcome[Note | None]:
        """
        Create a note, or update `note_id` in place.

        A note with neither title nor content is not saved (success, None).
        """
        if not title.strip() and not content.strip():
            return Outcome.success(None)

        now = datetime.now(timezone.utc)
        notes = await self.list()

        if note_id is None:
            note = Note(
                id=uuid.uuid4().hex,
                title=title or UNTITLED,
                content=content,
                created_at=now,
                updated_at=now,
            )
            await self._write([note, *notes])
            return Outcome.success(note)

        for index, existing in enumerate(notes):
            if existing.id == note_id:
                note = existing.model_copy(
                    update={"title": title or UNTITLED, "content": content, "updated_at": now}
                )
                notes[index] = note
                await self._write(notes)
                return Outcome.success(note)

        return Outcome.failure(NotFound("Note not found"))

    async def delete(self, note_id: str) -> Outcome[None]:
        """Remove a note. Unknown ids are ignored."""
        notes = await self.list()
        remaining = [note for note in notes if note.id != note_id]
        if len(remaining) != len(notes):
            await self._write(remaining)
        return Outcome.success(None)
