# roster/core/config.py
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

Role = Literal["admin", "teacher", "student"]


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key, the client always respects RLS)

    Optional:
      - DATABASE_URL (Supabase Postgres connection string, only used by
        provision_db.py to create tables, triggers and RLS policies)
      - LOCAL_STORE_PATH (JSON file for persisted auth artifacts and notes;
        empty => in-memory store that dies with the process)
    """

    PROJECT_NAME: str = "Student Roster"
    API_V1_STR: str = "/api/v1"

    # Supabase
    SUPABASE_URL: str
    SUPABASE_KEY: str
    DATABASE_URL: str | None = None
    AUTO_REFRESH_TOKEN: bool = True

    # Stamp students.user_id with the acting identity on insert
    TRACK_OWNERSHIP: bool = True

    # Sign-up
    #   self_assigned: the role picked on the sign-up form is stored as-is
    #   lowest:        everyone starts as "student", promotion is out-of-band
    SIGNUP_ROLE_POLICY: Literal["self_assigned", "lowest"] = "self_assigned"
    DEFAULT_SIGNUP_ROLE: Role = "teacher"
    SIGNUP_REDIRECT_URL: str | None = None
    MIN_PASSWORD_LENGTH: int = 6

    # Local persisted key/value store
    LOCAL_STORE_PATH: str = ""
    AUTH_STORAGE_PREFIXES: list[str] = ["supabase.auth."]
    AUTH_STORAGE_MARKERS: list[str] = ["sb-"]
    NOTES_STORAGE_KEY: str = "privateNotes"

    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
