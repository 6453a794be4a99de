# roster/schemas/auth.py
from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field

from roster.core.config import Role


class Identity(SQLModel):
    """Authenticated principal issued by Supabase Auth (auth.users)."""

    id: str
    email: str


class ProfileRead(SQLModel):
    """
    Application profile mirrored from public.profiles.

    One row per Identity, created by the sign-up trigger.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    first_name: str | None = None
    last_name: str | None = None
    role: Role

    @field_validator("id", mode="before")
    @classmethod
    def as_text(cls, v: object) -> str:
        return str(v)


class ProfileFields(SQLModel):
    """Profile data supplied at sign-up (stored as user metadata)."""

    model_config = ConfigDict(extra="forbid")

    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    role: Role | None = None


class SignInRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str


class SignUpRequest(ProfileFields):
    """
    Sign-up form payload.

    Password strength and confirmation are checked by the session store so
    the same rules apply to every caller, not only to this API.
    """

    email: EmailStr
    password: str
    confirm_password: str | None = None


class SessionRead(SQLModel):
    """Session snapshot consumed by the rendering layer."""

    state: str
    loading: bool
    identity: Identity | None = None
    profile: ProfileRead | None = None
    is_admin: bool = False
    is_teacher: bool = False
    capabilities: list[str] = []
