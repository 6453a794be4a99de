# roster/repositories/profile_repo.py
from supabase import AsyncClient

from roster.core.outcome import Outcome
from roster.core.remote_errors import classify_remote_error
from roster.models.profile import Profile
from roster.schemas.auth import ProfileRead


class ProfileRepository:
    """
    Read access to public.profiles.

    The row is created by the sign-up trigger and may not exist yet right
    after sign-up, so a missing row is a successful `None`, not an error.
    """

    def __init__(self, client: AsyncClient, table: str = Profile.__tablename__):
        self.client = client
        self.table = table

    async def get(self, user_id: str) -> Outcome[ProfileRead | None]:
        try:
            response = await (
                self.client.table(self.table)
                .select("*")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
            rows = response.data or []
            if not rows:
                return Outcome.success(None)
            return Outcome.success(ProfileRead.model_validate(rows[0]))
        except Exception as e:
            return Outcome.failure(classify_remote_error(e, "load profile"))
