# roster/models/student.py
import uuid
from datetime import date, datetime

from sqlalchemy import text
from sqlmodel import SQLModel, Field


class Student(SQLModel, table=True):
    """
    Registered student (public.students).

    Identity:
      - id: generated by Postgres (gen_random_uuid())

    Ownership:
      - user_id: auth.users.id of the teacher/admin who registered the
        student. Nullable: rows created with ownership tracking disabled
        carry no owner.

    created_at / updated_at are stamped by the database (default now() and
    the set_updated_at trigger), never by the client.
    """

    __tablename__ = "students"

    id: uuid.UUID = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"server_default": text("gen_random_uuid()")},
    )

    name: str = Field(max_length=200)

    id_number: str = Field(
        max_length=10,
        index=True,
        description="National ID, exactly 10 digits",
    )

    mobile: str = Field(max_length=10, description="Mobile number, exactly 10 digits")

    email: str = Field(max_length=320, index=True)

    course_name: str = Field(max_length=200, index=True)

    course_date: date = Field(description="Calendar date, no time-of-day")

    age: str = Field(max_length=20)

    accepted: bool = Field(
        default=False,
        sa_column_kwargs={"server_default": text("false")},
    )

    notes: str | None = Field(default=None)

    icon_type: str | None = Field(default=None, max_length=32)

    created_at: datetime = Field(
        default=None,
        index=True,
        sa_column_kwargs={"server_default": text("now()")},
    )

    updated_at: datetime = Field(
        default=None,
        sa_column_kwargs={"server_default": text("now()")},
    )

    user_id: uuid.UUID | None = Field(
        default=None,
        index=True,
        description="auth.users.id of the registering user",
    )
