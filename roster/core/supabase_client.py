# roster/core/supabase_client.py
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from roster.core.config import Settings
from roster.core.local_store import LocalStore


async def supabase_public(settings: Settings, store: LocalStore) -> AsyncClient:
    """
    Create the async Supabase client with the anon/public key.

    The auth session is persisted in `store`, so a restart recovers the
    previous session and sign-in/out cleanup can wipe it by key pattern.

    Note: This client always respects RLS. There is no service-role client:
    every write passes the same policies as the browser front end.
    """
    options = AsyncClientOptions(
        storage=store,
        persist_session=True,
        auto_refresh_token=settings.AUTO_REFRESH_TOKEN,
    )
    return await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_KEY, options=options)
