# roster/models/profile.py
import uuid
from datetime import datetime

from sqlalchemy import text
from sqlmodel import SQLModel, Field


class Profile(SQLModel, table=True):
    """
    Application profile for a Supabase Auth user.

    Identity:
      - id: MUST match auth.users.id. The row is inserted by the
        handle_new_user trigger from the sign-up metadata, so it can be
        missing for a short window right after sign-up.

    Role:
      - "admin" | "teacher" | "student"
      - admin implies teacher for every capability check.

    Password hashes live in Supabase's auth schema, not here.
    """

    __tablename__ = "profiles"

    id: uuid.UUID = Field(
        primary_key=True,
        description="Matches Supabase auth.users.id",
    )

    first_name: str | None = Field(default=None, max_length=100)

    last_name: str | None = Field(default=None, max_length=100)

    role: str = Field(
        default="student",
        index=True,
        sa_column_kwargs={"server_default": text("'student'")},
        description="Application role: admin | teacher | student",
    )

    created_at: datetime = Field(
        default=None,
        sa_column_kwargs={"server_default": text("now()")},
    )
