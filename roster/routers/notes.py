# roster/routers/notes.py
from fastapi import APIRouter, Depends, Response, status

from roster.context import AppContext, get_context
from roster.schemas.notes import Note, NoteWrite

router = APIRouter(prefix="/notes", tags=["Notes"])


@router.get("", response_model=list[Note])
async def list_notes(ctx: AppContext = Depends(get_context)):
    return await ctx.notes.list()


@router.post("", response_model=Note, status_code=status.HTTP_201_CREATED)
async def create_note(
    payload: NoteWrite,
    ctx: AppContext = Depends(get_context),
):
    """Create a note. An empty note is not saved (204)."""
    note = (await ctx.notes.save(payload.title, payload.content)).unwrap_http()
    if note is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return note


@router.put("/{note_id}", response_model=Note)
async def update_note(
    note_id: str,
    payload: NoteWrite,
    ctx: AppContext = Depends(get_context),
):
    note = (await ctx.notes.save(payload.title, payload.content, note_id=note_id)).unwrap_http()
    if note is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return note


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: str, ctx: AppContext = Depends(get_context)):
    (await ctx.notes.delete(note_id)).unwrap_http()
