# roster/context.py
from dataclasses import dataclass

from fastapi import Request
from supabase import AsyncClient

from roster.core.config import Settings
from roster.core.local_store import LocalStore
from roster.core.supabase_client import supabase_public
from roster.repositories.profile_repo import ProfileRepository
from roster.repositories.student_repo import StudentRepository
from roster.services.notes_service import PrivateNotes
from roster.services.session_service import SessionStore
from roster.services.view_state import ViewStateController


@dataclass
class AppContext:
    """
    Process-wide application state, created once at startup.

    Routes receive it through `Depends(get_context)`; nothing else holds a
    global reference to the session or the caches.
    """

    settings: Settings
    client: AsyncClient
    store: LocalStore
    session: SessionStore
    profiles: ProfileRepository
    students: StudentRepository
    view: ViewStateController
    notes: PrivateNotes

    async def close(self) -> None:
        await self.session.close()


def build_context(settings: Settings, client: AsyncClient, store: LocalStore) -> AppContext:
    """Wire the components around an existing client and local store."""
    profiles = ProfileRepository(client)
    session = SessionStore(client, store, profiles, settings)
    students = StudentRepository(
        client,
        session,
        track_ownership=settings.TRACK_OWNERSHIP,
    )
    return AppContext(
        settings=settings,
        client=client,
        store=store,
        session=session,
        profiles=profiles,
        students=students,
        view=ViewStateController(students, session),
        notes=PrivateNotes(store, key=settings.NOTES_STORAGE_KEY),
    )


async def create_context(settings: Settings) -> AppContext:
    """Create the local store and the Supabase client, then wire everything."""
    store = LocalStore(settings.LOCAL_STORE_PATH or None)
    client = await supabase_public(settings, store)
    return build_context(settings, client, store)


def get_context(request: Request) -> AppContext:
    """
    FastAPI dependency returning the application context.

    Usage:

        @router.get("/example")
        def example_endpoint(ctx: AppContext = Depends(get_context)):
            ...
    """
    return request.app.state.context
