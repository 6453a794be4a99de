import pytest

from roster.core.errors import NotFound
from roster.core.local_store import LocalStore
from roster.services.notes_service import PrivateNotes


@pytest.fixture
def notes():
    return PrivateNotes(LocalStore(), key="privateNotes")


@pytest.mark.anyio
async def test_empty_note_is_not_saved(notes):
    outcome = await notes.save("  ", "")
    assert outcome.ok
    assert outcome.value is None
    assert await notes.list() == []


@pytest.mark.anyio
async def test_new_notes_come_first_and_default_title(notes):
    first = (await notes.save("Groceries", "milk")).value
    second = (await notes.save("", "call the registrar")).value

    assert second.title == "Untitled"
    assert [n.id for n in await notes.list()] == [second.id, first.id]


@pytest.mark.anyio
async def test_update_keeps_position(notes):
    first = (await notes.save("One", "a")).value
    second = (await notes.save("Two", "b")).value

    updated = (await notes.save("One (edited)", "a+", note_id=first.id)).value
    assert updated.created_at == first.created_at
    assert updated.updated_at >= first.updated_at

    listed = await notes.list()
    assert [n.id for n in listed] == [second.id, first.id]
    assert listed[1].title == "One (edited)"


@pytest.mark.anyio
async def test_update_of_unknown_note_is_not_found(notes):
    outcome = await notes.save("Title", "body", note_id="missing")
    assert isinstance(outcome.error, NotFound)


@pytest.mark.anyio
async def test_delete_is_idempotent(notes):
    note = (await notes.save("Temp", "")).value
    assert (await notes.delete(note.id)).ok
    assert (await notes.delete(note.id)).ok
    assert await notes.list() == []


@pytest.mark.anyio
async def test_corrupt_payload_reads_as_empty():
    store = LocalStore()
    await store.set_item("privateNotes", "{oops")
    assert await PrivateNotes(store).list() == []


@pytest.mark.anyio
async def test_notes_survive_auth_cleanup():
    store = LocalStore()
    notes = PrivateNotes(store)
    await notes.save("Keep me", "")
    await store.set_item("supabase.auth.token", "session")

    store.clear_matching(["supabase.auth."], ["sb-"])
    assert [n.title for n in await notes.list()] == ["Keep me"]
