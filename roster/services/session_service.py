# roster/services/session_service.py
import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

from supabase import AsyncClient
from supabase_auth.errors import AuthApiError, AuthError, AuthWeakPasswordError

from roster.core.auth import capabilities_for, is_admin, is_teacher
from roster.core.config import Role, Settings
from roster.core.errors import (
    EmailInUse,
    InvalidCredentials,
    RosterError,
    UnexpectedAuthError,
    ValidationError,
    WeakCredentials,
)
from roster.core.local_store import LocalStore
from roster.core.outcome import Outcome
from roster.repositories.profile_repo import ProfileRepository
from roster.schemas.auth import Identity, ProfileFields, ProfileRead, SessionRead

logger = logging.getLogger(__name__)

ResetListener = Callable[[], Awaitable[None] | None]

_INVALID_CREDENTIAL_CODES = {"invalid_credentials", "invalid_grant"}
_EMAIL_IN_USE_CODES = {"user_already_exists", "email_exists"}
_WEAK_PASSWORD_CODES = {"weak_password"}


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


def classify_auth_error(exc: Exception) -> RosterError:
    """Map a Supabase Auth exception to the auth error taxonomy."""
    if isinstance(exc, AuthWeakPasswordError):
        return WeakCredentials(exc.message)

    if isinstance(exc, AuthApiError):
        code = str(getattr(exc, "code", None) or "")
        lowered = (exc.message or "").lower()
        if code in _INVALID_CREDENTIAL_CODES or "invalid login credentials" in lowered:
            return InvalidCredentials("Invalid email or password")
        if code in _EMAIL_IN_USE_CODES or "already registered" in lowered:
            return EmailInUse("An account with this email already exists")
        if code in _WEAK_PASSWORD_CODES:
            return WeakCredentials(exc.message)
        return UnexpectedAuthError(exc.message)

    if isinstance(exc, AuthError):
        return UnexpectedAuthError(exc.message)

    logger.exception("Unexpected auth error")
    return UnexpectedAuthError("An unexpected error occurred.")


class SessionStore:
    """
    Current identity and profile for this process.

    Lifecycle:
      - bootstrap(): recover a persisted session, load its profile.
        `loading` stays True until it resolves (with or without a session).
      - on_change(): auth state callback from Supabase. A SIGNED_IN event
        loads the profile in a separate task, never inside the callback.
      - sign_in / sign_up / sign_out: wipe namespaced auth keys from the
        local store first. Sign-in/out then reset every registered cache
        and bootstrap again on a later loop turn, so nothing cached for the
        previous identity survives.

    Operations return Outcome; expected failures never raise.
    """

    def __init__(
        self,
        client: AsyncClient,
        store: LocalStore,
        profiles: ProfileRepository,
        settings: Settings,
    ):
        self.client = client
        self.store = store
        self.profiles = profiles
        self.settings = settings

        self.state = AuthState.UNAUTHENTICATED
        self.identity: Identity | None = None
        self.profile: ProfileRead | None = None
        self.loading = True

        self._ready = asyncio.Event()
        self._subscription: Any = None
        self._pending: set[asyncio.Task] = set()
        self._reset_listeners: list[ResetListener] = []

    # ----- Derived -----

    @property
    def is_admin(self) -> bool:
        return is_admin(self.profile)

    @property
    def is_teacher(self) -> bool:
        return is_teacher(self.profile)

    def snapshot(self) -> SessionRead:
        return SessionRead(
            state=self.state.value,
            loading=self.loading,
            identity=self.identity,
            profile=self.profile,
            is_admin=self.is_admin,
            is_teacher=self.is_teacher,
            capabilities=sorted(c.value for c in capabilities_for(self.profile)),
        )

    # ----- Bootstrap -----

    async def bootstrap(self) -> Outcome[Identity | None]:
        """
        Recover the persisted session, if any.

        A failure to read the session resolves to "no session": the caller
        gets the error, the store ends up unauthenticated and not loading.
        """
        self.loading = True
        self._ready.clear()
        self.state = AuthState.AUTHENTICATING
        if self._subscription is None:
            self._subscription = self.client.auth.on_auth_state_change(self.on_change)

        outcome: Outcome[Identity | None]
        try:
            session = await self.client.auth.get_session()
            self._apply_session(session)
            if self.identity is not None:
                await self._load_profile(self.identity.id)
            logger.info(f"Initial session check: {self.identity.email if self.identity else None}")
            outcome = Outcome.success(self.identity)
        except Exception as e:
            self._apply_session(None)
            outcome = Outcome.failure(classify_auth_error(e))
        finally:
            self.loading = False
            self._ready.set()
        return outcome

    async def wait_ready(self) -> None:
        """Block until the current bootstrap has resolved."""
        await self._ready.wait()

    def on_change(self, event: str, session: Any) -> None:
        """Auth state callback (SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED, ...)."""
        previous = self.identity
        self._apply_session(session)
        logger.info(f"Auth state changed: {event} {self.identity.email if self.identity else None}")

        if self.identity is None:
            self.profile = None
        elif event == "SIGNED_IN" or previous is None or previous.id != self.identity.id:
            self._defer(self._load_profile, self.identity.id)

        self.loading = False

    # ----- Auth operations -----

    async def sign_in(self, email: str, password: str) -> Outcome[Identity]:
        self.loading = True
        try:
            self._clear_auth_artifacts()
            await self._global_sign_out()

            try:
                response = await self.client.auth.sign_in_with_password(
                    {"email": email, "password": password}
                )
            except Exception as e:
                error = classify_auth_error(e)
                logger.info(f"Sign in failed for {email}: {error.message}")
                return Outcome.failure(error)

            user = getattr(response, "user", None)
            if user is None:
                return Outcome.failure(UnexpectedAuthError("Sign in returned no user"))

            self._schedule_reset()
            return Outcome.success(Identity(id=str(user.id), email=user.email or email))
        finally:
            self.loading = False

    async def sign_up(
        self,
        email: str,
        password: str,
        profile: ProfileFields | None = None,
        confirm_password: str | None = None,
    ) -> Outcome[Identity]:
        """
        Register an Identity. The profile row is created remotely from the
        metadata sent here (first_name, last_name, role).
        """
        profile = profile or ProfileFields()
        if confirm_password is not None and confirm_password != password:
            return Outcome.failure(
                ValidationError(
                    "Passwords do not match",
                    {"confirm_password": "Passwords do not match"},
                )
            )
        if len(password) < self.settings.MIN_PASSWORD_LENGTH:
            return Outcome.failure(
                WeakCredentials(
                    f"Password must be at least {self.settings.MIN_PASSWORD_LENGTH} characters long"
                )
            )

        options: dict[str, Any] = {
            "data": {
                "first_name": profile.first_name,
                "last_name": profile.last_name,
                "role": self.initial_role(profile.role),
            }
        }
        if self.settings.SIGNUP_REDIRECT_URL:
            options["email_redirect_to"] = self.settings.SIGNUP_REDIRECT_URL

        self.loading = True
        try:
            self._clear_auth_artifacts()
            try:
                response = await self.client.auth.sign_up(
                    {"email": email, "password": password, "options": options}
                )
            except Exception as e:
                error = classify_auth_error(e)
                logger.info(f"Sign up failed for {email}: {error.message}")
                return Outcome.failure(error)

            user = getattr(response, "user", None)
            if user is None:
                return Outcome.failure(UnexpectedAuthError("Sign up returned no user"))
            # With email enumeration protection an existing address gets an
            # obfuscated user without identities instead of an error.
            if getattr(user, "identities", None) == []:
                return Outcome.failure(EmailInUse("An account with this email already exists"))

            return Outcome.success(Identity(id=str(user.id), email=user.email or email))
        finally:
            self.loading = False

    async def sign_out(self) -> Outcome[None]:
        self._clear_auth_artifacts()
        await self._global_sign_out()

        self._apply_session(None)
        self._schedule_reset()
        return Outcome.success(None)

    def initial_role(self, requested: Role | None) -> Role:
        """Role stored on the new profile, per SIGNUP_ROLE_POLICY."""
        if self.settings.SIGNUP_ROLE_POLICY == "lowest":
            return "student"
        return requested or self.settings.DEFAULT_SIGNUP_ROLE

    # ----- Cache reset -----

    def add_reset_listener(self, listener: ResetListener) -> None:
        """Register a cache to clear whenever the session changes hands."""
        self._reset_listeners.append(listener)

    async def settled(self) -> None:
        """Wait for every deferred profile load / reset to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        await self.settled()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    # ----- Internals -----

    def _apply_session(self, session: Any) -> None:
        user = getattr(session, "user", None) if session is not None else None
        if user is None:
            self.identity = None
            self.profile = None
            self.state = AuthState.UNAUTHENTICATED
            return

        identity = Identity(id=str(user.id), email=user.email or "")
        if self.profile is not None and self.profile.id != identity.id:
            self.profile = None
        self.identity = identity
        self.state = AuthState.AUTHENTICATED

    async def _load_profile(self, user_id: str) -> None:
        outcome = await self.profiles.get(user_id)
        if not outcome.ok:
            logger.error(f"Error loading user profile: {outcome.error.message}")
            return
        # The session may have changed hands while the read was in flight
        if self.identity is None or self.identity.id != user_id:
            return
        self.profile = outcome.value

    async def _reset(self) -> None:
        for listener in list(self._reset_listeners):
            result = listener()
            if inspect.isawaitable(result):
                await result
        await self.bootstrap()

    def _schedule_reset(self) -> None:
        self._defer(self._reset)

    def _defer(self, func: Callable[..., Awaitable[None]], *args: Any) -> None:
        # create_task never runs the coroutine inline: it starts on a later
        # loop iteration, outside the caller's stack.
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, skipping deferred {func.__name__}")
            return
        task = loop.create_task(func(*args))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _clear_auth_artifacts(self) -> None:
        removed = self.store.clear_matching(
            self.settings.AUTH_STORAGE_PREFIXES,
            self.settings.AUTH_STORAGE_MARKERS,
        )
        if removed:
            logger.info(f"Cleaned up auth state: {', '.join(removed)}")

    async def _global_sign_out(self) -> None:
        try:
            await self.client.auth.sign_out({"scope": "global"})
        except Exception as e:
            logger.info(f"Global sign-out failed, continuing: {e}")
