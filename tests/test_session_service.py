from types import SimpleNamespace

import pytest
from supabase_auth.errors import AuthApiError, AuthRetryableError

from roster.core.errors import (
    EmailInUse,
    InvalidCredentials,
    UnexpectedAuthError,
    ValidationError,
    WeakCredentials,
)
from roster.schemas.auth import ProfileFields
from roster.services.session_service import AuthState, classify_auth_error


@pytest.mark.anyio
async def test_bootstrap_without_session_resolves_unauthenticated(ctx):
    assert ctx.session.loading is True

    outcome = await ctx.session.bootstrap()

    assert outcome.ok
    assert outcome.value is None
    assert ctx.session.loading is False
    assert ctx.session.state == AuthState.UNAUTHENTICATED
    assert ctx.session.profile is None


@pytest.mark.anyio
async def test_bootstrap_recovers_persisted_session(ctx, backend, store):
    user = backend.add_user("teacher@school.edu", role="teacher")
    await store.set_item("supabase.auth.token", '{"email": "teacher@school.edu"}')

    outcome = await ctx.session.bootstrap()

    assert outcome.value.id == user["id"]
    assert ctx.session.state == AuthState.AUTHENTICATED
    assert ctx.session.profile.role == "teacher"
    assert ctx.session.loading is False


@pytest.mark.anyio
async def test_bootstrap_failure_ends_loading_without_session(ctx, client):
    client.auth.get_session_error = AuthRetryableError("network down", 0)

    outcome = await ctx.session.bootstrap()

    assert isinstance(outcome.error, UnexpectedAuthError)
    assert ctx.session.loading is False
    assert ctx.session.identity is None


@pytest.mark.anyio
async def test_missing_profile_is_tolerated(ctx, backend, login):
    backend.add_user("ghost@school.edu", role=None)

    await login(ctx, email="ghost@school.edu")

    assert ctx.session.identity.email == "ghost@school.edu"
    assert ctx.session.profile is None
    assert ctx.session.snapshot().capabilities == []


@pytest.mark.anyio
async def test_profile_load_is_deferred_out_of_the_callback(ctx, backend):
    user = backend.add_user("admin@school.edu", role="admin")
    await ctx.session.bootstrap()
    session = SimpleNamespace(user=SimpleNamespace(id=user["id"], email=user["email"]))
    before = len(backend.calls)

    ctx.session.on_change("SIGNED_IN", session)

    # nothing was read synchronously inside the callback
    assert ctx.session.identity.id == user["id"]
    assert ctx.session.profile is None
    assert len(backend.calls) == before

    await ctx.session.settled()
    assert ctx.session.profile.role == "admin"
    assert ctx.session.is_admin and ctx.session.is_teacher


@pytest.mark.anyio
async def test_sign_in_cleans_auth_artifacts_first(ctx, backend, store, login):
    await store.set_item("supabase.auth.stale", "x")
    await store.set_item("sb-project-auth-token", "x")
    await store.set_item("privateNotes", "[]")

    await login(ctx, "teacher")

    keys = store.keys()
    assert "supabase.auth.stale" not in keys
    assert "sb-project-auth-token" not in keys
    assert "privateNotes" in keys
    assert ("auth", "sign_out") in backend.calls


@pytest.mark.anyio
async def test_sign_in_ignores_global_sign_out_failure(ctx, client, login):
    client.auth.sign_out_error = AuthRetryableError("offline", 0)

    identity = await login(ctx, "teacher")

    assert ctx.session.identity == identity
    assert ctx.session.profile.role == "teacher"


@pytest.mark.anyio
async def test_wrong_password_is_invalid_credentials(ctx, backend):
    backend.add_user("teacher@school.edu", password="right-password")
    await ctx.session.bootstrap()

    outcome = await ctx.session.sign_in("teacher@school.edu", "wrong-password")

    assert isinstance(outcome.error, InvalidCredentials)
    assert outcome.error.message == "Invalid email or password"
    assert ctx.session.loading is False
    assert ctx.session.identity is None


@pytest.mark.anyio
async def test_sign_up_rejects_short_password_without_network(ctx, backend):
    outcome = await ctx.session.sign_up("new@school.edu", "12345")

    assert isinstance(outcome.error, WeakCredentials)
    assert backend.calls == []


@pytest.mark.anyio
async def test_sign_up_rejects_mismatched_confirmation(ctx, backend):
    outcome = await ctx.session.sign_up("new@school.edu", "secret123", confirm_password="secret321")

    assert isinstance(outcome.error, ValidationError)
    assert outcome.error.errors == {"confirm_password": "Passwords do not match"}
    assert backend.calls == []


@pytest.mark.anyio
async def test_sign_up_existing_email_is_email_in_use(ctx, backend):
    backend.add_user("taken@school.edu")
    outcome = await ctx.session.sign_up("taken@school.edu", "secret123")
    assert isinstance(outcome.error, EmailInUse)


@pytest.mark.anyio
async def test_sign_up_sends_profile_metadata(ctx, backend):
    outcome = await ctx.session.sign_up(
        "a@x.com",
        "secret123",
        profile=ProfileFields(first_name="Ada", last_name="Lovelace", role="admin"),
    )

    assert outcome.ok
    assert backend.last_signup_options["data"] == {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "role": "admin",
    }
    assert backend.role_of(outcome.value.id) == "admin"


@pytest.mark.anyio
async def test_sign_up_defaults_to_teacher(ctx, backend):
    outcome = await ctx.session.sign_up("t@x.com", "secret123")
    assert backend.role_of(outcome.value.id) == "teacher"


@pytest.mark.anyio
async def test_lowest_role_policy_ignores_requested_role(make_context, backend):
    ctx = make_context(SIGNUP_ROLE_POLICY="lowest")

    outcome = await ctx.session.sign_up(
        "a@x.com", "secret123", profile=ProfileFields(role="admin")
    )

    assert backend.role_of(outcome.value.id) == "student"


@pytest.mark.anyio
async def test_sign_out_resets_registered_caches(ctx, login):
    await login(ctx, "teacher")
    calls = []
    ctx.session.add_reset_listener(lambda: calls.append("reset"))

    outcome = await ctx.session.sign_out()
    assert ctx.session.identity is None
    await ctx.session.settled()

    assert outcome.ok
    assert calls == ["reset"]
    assert ctx.session.state == AuthState.UNAUTHENTICATED
    assert ctx.session.loading is False


@pytest.mark.anyio
async def test_switching_users_never_leaks_the_previous_profile(ctx, backend, login):
    await login(ctx, "admin")
    assert ctx.session.is_admin

    await login(ctx, "student")

    assert ctx.session.profile.role == "student"
    assert not ctx.session.is_teacher


@pytest.mark.anyio
async def test_close_unsubscribes(ctx, client):
    await ctx.session.bootstrap()
    assert len(client.auth.listeners) == 1

    await ctx.close()

    assert client.auth.listeners == []


@pytest.mark.parametrize(
    "exc, expected",
    [
        (AuthApiError("Invalid login credentials", 400, "invalid_credentials"), InvalidCredentials),
        (AuthApiError("Invalid login credentials", 400, None), InvalidCredentials),
        (AuthApiError("User already registered", 422, "user_already_exists"), EmailInUse),
        (AuthApiError("Password is too weak", 422, "weak_password"), WeakCredentials),
        (AuthApiError("Database error saving new user", 500, "unexpected_failure"), UnexpectedAuthError),
        (ValueError("boom"), UnexpectedAuthError),
    ],
)
def test_classify_auth_error(exc, expected):
    assert isinstance(classify_auth_error(exc), expected)
