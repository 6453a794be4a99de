# roster/database.py
"""
Provisioning for the remote store (run once per project, not at app start).

The client only ever talks to Supabase through the anon key, so the rules
that matter are enforced here, inside Postgres:

  - profiles / students tables (from the SQLModel table models)
  - handle_new_user trigger: creates the profile row from sign-up metadata
  - set_updated_at trigger on students
  - row-level security mirroring the client capability policy:
        select : any signed-in user
        insert : teacher or admin
        update : teacher or admin
        delete : admin
"""
from sqlalchemy import Engine
from sqlmodel import SQLModel, create_engine

from roster.core.config import Settings
from roster.models.profile import Profile
from roster.models.student import Student

ROLES = ("admin", "teacher", "student")


def get_engine(settings: Settings) -> Engine:
    """
    Engine for the Supabase Postgres connection string (DATABASE_URL).

    - sslmode=require   : enforce SSL when running in the cloud
    - pool_size=1       : provisioning needs a single connection
    - max_overflow=0    : never open extra connections
    - pool_pre_ping=True: validate connections before using them

    Raises:
        RuntimeError: if DATABASE_URL is not set.
    """
    if not settings.DATABASE_URL:
        raise RuntimeError("Missing DATABASE_URL in .env")

    db_url = settings.DATABASE_URL
    if "sslmode=" not in db_url:
        db_url += "&sslmode=require" if "?" in db_url else "?sslmode=require"

    return create_engine(
        db_url,
        echo=False,
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=0,
    )


def create_db_and_tables(engine: Engine) -> None:
    """Create profiles and students if they do not exist."""
    SQLModel.metadata.create_all(
        engine,
        tables=[Profile.__table__, Student.__table__],
    )


def _role_sql_list(roles: tuple[str, ...]) -> str:
    return ", ".join(f"'{role}'" for role in roles)


def _signup_role_expression(settings: Settings) -> str:
    if settings.SIGNUP_ROLE_POLICY == "lowest":
        return "'student'"
    return (
        "case when new.raw_user_meta_data ->> 'role' in ("
        f"{_role_sql_list(ROLES)}) then new.raw_user_meta_data ->> 'role' "
        f"else '{settings.DEFAULT_SIGNUP_ROLE}' end"
    )


def row_level_security_sql(settings: Settings) -> list[str]:
    """
    Statements that install triggers, constraints and RLS policies.

    Idempotent: every object is dropped/replaced before it is created.
    """
    profiles = f"public.{Profile.__tablename__}"
    students = f"public.{Student.__tablename__}"
    staff = _role_sql_list(("teacher", "admin"))

    return [
        # --- constraints mirroring client validation ---
        f"alter table {profiles} drop constraint if exists profiles_role_check",
        f"alter table {profiles} add constraint profiles_role_check "
        f"check (role in ({_role_sql_list(ROLES)}))",
        f"alter table {students} drop constraint if exists students_id_number_check",
        f"alter table {students} add constraint students_id_number_check "
        "check (id_number ~ '^[0-9]{10}$')",
        f"alter table {students} drop constraint if exists students_mobile_check",
        f"alter table {students} add constraint students_mobile_check "
        "check (mobile ~ '^[0-9]{10}$')",
        # --- role lookup for policies ---
        "create or replace function public.current_app_role() returns text "
        "language sql stable security definer set search_path = public as $$ "
        f"select role from {profiles} where id = auth.uid() $$",
        # --- profile row on sign-up ---
        "create or replace function public.handle_new_user() returns trigger "
        "language plpgsql security definer set search_path = public as $$ begin "
        f"insert into {profiles} (id, first_name, last_name, role) values ("
        "new.id, new.raw_user_meta_data ->> 'first_name', "
        "new.raw_user_meta_data ->> 'last_name', "
        f"{_signup_role_expression(settings)}); "
        "return new; end $$",
        "drop trigger if exists on_auth_user_created on auth.users",
        "create trigger on_auth_user_created after insert on auth.users "
        "for each row execute function public.handle_new_user()",
        # --- server-stamped updated_at ---
        "create or replace function public.set_updated_at() returns trigger "
        "language plpgsql as $$ begin new.updated_at = now(); return new; end $$",
        f"drop trigger if exists students_set_updated_at on {students}",
        f"create trigger students_set_updated_at before update on {students} "
        "for each row execute function public.set_updated_at()",
        # --- RLS ---
        f"alter table {profiles} enable row level security",
        f"alter table {students} enable row level security",
        f'drop policy if exists "profiles_select_own" on {profiles}',
        f'create policy "profiles_select_own" on {profiles} '
        "for select using (auth.uid() = id)",
        f'drop policy if exists "students_select_signed_in" on {students}',
        f'create policy "students_select_signed_in" on {students} '
        "for select using (auth.uid() is not null)",
        f'drop policy if exists "students_insert_staff" on {students}',
        f'create policy "students_insert_staff" on {students} '
        f"for insert with check (public.current_app_role() in ({staff}))",
        f'drop policy if exists "students_update_staff" on {students}',
        f'create policy "students_update_staff" on {students} '
        f"for update using (public.current_app_role() in ({staff})) "
        f"with check (public.current_app_role() in ({staff}))",
        f'drop policy if exists "students_delete_admin" on {students}',
        f'create policy "students_delete_admin" on {students} '
        "for delete using (public.current_app_role() = 'admin')",
    ]


def apply_row_level_security(engine: Engine, settings: Settings) -> None:
    """Run row_level_security_sql() in one transaction."""
    with engine.begin() as conn:
        for statement in row_level_security_sql(settings):
            conn.exec_driver_sql(statement)
