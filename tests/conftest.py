"""
Pytest configuration and shared fixtures.

The Supabase client is replaced by an in-memory stand-in that speaks the
subset of the async client API the roster uses:

  client.table(name).select/insert/update/delete/eq/order/limit/execute
  client.auth.get_session/sign_in_with_password/sign_up/sign_out/
              on_auth_state_change

Several clients can share one FakeBackend to model two browser sessions
looking at the same remote data. Every remote call is recorded in
`backend.calls` so tests can assert that nothing was sent.
"""
import asyncio
import json
import os
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError
from supabase_auth.errors import AuthApiError

# Set test environment variables before any roster module reads settings
os.environ.setdefault("SUPABASE_URL", "http://supabase.test")
os.environ.setdefault("SUPABASE_KEY", "test_anon_key")
os.environ["LOCAL_STORE_PATH"] = ""

from roster.context import build_context  # noqa: E402
from roster.core.config import Settings  # noqa: E402
from roster.core.local_store import LocalStore  # noqa: E402

SESSION_KEY = "supabase.auth.token"
STAFF_ROLES = {"teacher", "admin"}


def _rls_violation() -> APIError:
    return APIError(
        {
            "message": "new row violates row-level security policy",
            "code": "42501",
            "hint": None,
            "details": None,
        }
    )


class FakeBackend:
    """Remote data shared by every FakeClient: tables, users, call log."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {"students": [], "profiles": []}
        self.users: dict[str, dict] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, Exception] = {}
        self.last_signup_options: dict = {}
        self.enforce_rls = True
        # when set, every row store request waits on it (simulates latency)
        self.gate: asyncio.Event | None = None
        self._clock = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)

    def tick(self) -> str:
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def fail_next(self, op: str, exc: Exception) -> None:
        """Make the next `op` (select/insert/update/delete) raise `exc`."""
        self.failures[op] = exc

    def add_user(
        self,
        email: str,
        password: str = "secret123",
        role: str | None = "teacher",
        first_name: str = "",
        last_name: str = "",
    ) -> dict:
        """Register an auth user; the profile row mimics the sign-up trigger."""
        user = {
            "id": str(uuid.uuid4()),
            "email": email,
            "password": password,
            "user_metadata": {"first_name": first_name, "last_name": last_name, "role": role},
        }
        self.users[email] = user
        if role is not None:
            self.tables["profiles"].append(
                {"id": user["id"], "first_name": first_name, "last_name": last_name, "role": role}
            )
        return user

    def seed_student(self, **fields) -> dict:
        row = {
            "id": str(uuid.uuid4()),
            "name": "Sara Ali",
            "id_number": "1234567890",
            "mobile": "0551234567",
            "email": "sara@example.com",
            "course_name": "Python 101",
            "course_date": "2024-03-15",
            "age": "21",
            "accepted": False,
            "notes": None,
            "icon_type": "user",
            "user_id": None,
        }
        row.update(fields)
        stamp = self.tick()
        row.setdefault("created_at", stamp)
        row.setdefault("updated_at", stamp)
        self.tables["students"].append(row)
        return row

    def role_of(self, user_id: str | None) -> str | None:
        for profile in self.tables["profiles"]:
            if profile["id"] == user_id:
                return profile["role"]
        return None


class FakeQuery:
    def __init__(self, backend: FakeBackend, table: str, auth: "FakeAuth"):
        self.backend = backend
        self.table = table
        self.auth = auth
        self.op = "select"
        self.payload: dict | None = None
        self.filters: list[tuple[str, object]] = []
        self.order_by: tuple[str, bool] | None = None
        self.max_rows: int | None = None

    def select(self, *columns):
        self.op = "select"
        return self

    def insert(self, row: dict):
        self.op = "insert"
        self.payload = dict(row)
        return self

    def update(self, patch: dict):
        self.op = "update"
        self.payload = dict(patch)
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column: str, value):
        self.filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False):
        self.order_by = (column, desc)
        return self

    def limit(self, count: int):
        self.max_rows = count
        return self

    def _matching(self, rows: list[dict]) -> list[dict]:
        return [r for r in rows if all(str(r.get(c)) == str(v) for c, v in self.filters)]

    def _check_rls(self) -> None:
        if not self.backend.enforce_rls or self.table != "students":
            return
        role = self.backend.role_of(self.auth.current_user_id)
        if self.op in ("insert", "update") and role not in STAFF_ROLES:
            raise _rls_violation()
        if self.op == "delete" and role != "admin":
            raise _rls_violation()

    async def execute(self):
        self.backend.calls.append((self.table, self.op))
        if self.backend.gate is not None:
            await self.backend.gate.wait()
        failure = self.backend.failures.pop(self.op, None)
        if failure is not None:
            raise failure
        self._check_rls()

        rows = self.backend.tables.setdefault(self.table, [])
        if self.op == "select":
            result = [dict(r) for r in self._matching(rows)]
            if self.order_by:
                column, desc = self.order_by
                result.sort(key=lambda r: r.get(column) or "", reverse=desc)
            if self.max_rows is not None:
                result = result[: self.max_rows]
        elif self.op == "insert":
            row = dict(self.payload)
            stamp = self.backend.tick()
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("accepted", False)
            row.setdefault("notes", None)
            row.setdefault("user_id", None)
            row["created_at"] = stamp
            row["updated_at"] = stamp
            rows.append(row)
            result = [dict(row)]
        elif self.op == "update":
            result = []
            for row in self._matching(rows):
                row.update(self.payload)
                row["updated_at"] = self.backend.tick()
                result.append(dict(row))
        else:
            doomed = self._matching(rows)
            self.backend.tables[self.table] = [r for r in rows if r not in doomed]
            result = [dict(r) for r in doomed]
        return SimpleNamespace(data=result)


class FakeSubscription:
    def __init__(self, auth: "FakeAuth", callback):
        self.auth = auth
        self.callback = callback

    def unsubscribe(self):
        if self.callback in self.auth.listeners:
            self.auth.listeners.remove(self.callback)


class FakeAuth:
    def __init__(self, backend: FakeBackend, store: LocalStore):
        self.backend = backend
        self.store = store
        self.session = None
        self.listeners: list = []
        self.sign_out_error: Exception | None = None
        self.get_session_error: Exception | None = None

    @property
    def current_user_id(self) -> str | None:
        return self.session.user.id if self.session is not None else None

    @staticmethod
    def _user_ns(user: dict, identities: list | None = None):
        return SimpleNamespace(
            id=user["id"],
            email=user["email"],
            user_metadata=user["user_metadata"],
            identities=identities if identities is not None else [{"provider": "email"}],
        )

    def _emit(self, event: str, session) -> None:
        for callback in list(self.listeners):
            callback(event, session)

    def on_auth_state_change(self, callback):
        self.listeners.append(callback)
        return FakeSubscription(self, callback)

    async def get_session(self):
        self.backend.calls.append(("auth", "get_session"))
        if self.get_session_error is not None:
            raise self.get_session_error
        if self.session is None:
            raw = await self.store.get_item(SESSION_KEY)
            if raw:
                user = self.backend.users.get(json.loads(raw)["email"])
                if user is not None:
                    self.session = SimpleNamespace(user=self._user_ns(user), access_token="restored")
        return self.session

    async def sign_in_with_password(self, credentials: dict):
        self.backend.calls.append(("auth", "sign_in_with_password"))
        user = self.backend.users.get(credentials["email"])
        if user is None or user["password"] != credentials["password"]:
            raise AuthApiError("Invalid login credentials", 400, "invalid_credentials")
        self.session = SimpleNamespace(user=self._user_ns(user), access_token=f"token-{user['id']}")
        await self.store.set_item(SESSION_KEY, json.dumps({"email": user["email"]}))
        self._emit("SIGNED_IN", self.session)
        return SimpleNamespace(user=self.session.user, session=self.session)

    async def sign_up(self, credentials: dict):
        self.backend.calls.append(("auth", "sign_up"))
        email = credentials["email"]
        if email in self.backend.users:
            raise AuthApiError("User already registered", 422, "user_already_exists")
        data = credentials.get("options", {}).get("data", {})
        user = self.backend.add_user(
            email,
            credentials["password"],
            role=data.get("role") or "teacher",
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
        )
        self.backend.last_signup_options = credentials.get("options", {})
        return SimpleNamespace(user=self._user_ns(user), session=None)

    async def sign_out(self, options: dict | None = None):
        self.backend.calls.append(("auth", "sign_out"))
        if self.sign_out_error is not None:
            raise self.sign_out_error
        if self.session is not None:
            self.session = None
            await self.store.remove_item(SESSION_KEY)
            self._emit("SIGNED_OUT", None)


class FakeClient:
    def __init__(self, backend: FakeBackend, store: LocalStore):
        self.backend = backend
        self.auth = FakeAuth(backend, store)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self.backend, name, self.auth)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(
        SUPABASE_URL="http://supabase.test",
        SUPABASE_KEY="test_anon_key",
        LOCAL_STORE_PATH="",
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def store():
    return LocalStore()


@pytest.fixture
def client(backend, store):
    return FakeClient(backend, store)


@pytest.fixture
def ctx(settings, client, store):
    return build_context(settings, client, store)


@pytest.fixture
def make_context(settings, backend):
    """Build an extra, independent context (another browser) on the same backend."""

    def _make(**overrides):
        local = LocalStore()
        conf = settings.model_copy(update=overrides) if overrides else settings
        return build_context(conf, FakeClient(backend, local), local)

    return _make


@pytest.fixture
def login(backend):
    """
    Sign a context in as a freshly registered user of `role`.

    Usage:
        identity = await login(ctx, "admin")
    """

    async def _login(context, role: str = "teacher", email: str | None = None, password: str = "secret123"):
        email = email or f"{role}-{uuid.uuid4().hex[:6]}@school.edu"
        if email not in backend.users:
            backend.add_user(email, password, role=role)
        await context.session.bootstrap()
        outcome = await context.session.sign_in(email, password)
        assert outcome.ok, outcome.error
        await context.session.settled()
        return outcome.value

    return _login
