# roster/routers/auth.py
from fastapi import APIRouter, Depends, status

from roster.context import AppContext, get_context
from roster.schemas.auth import Identity, SessionRead, SignInRequest, SignUpRequest

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get("/me", response_model=SessionRead)
def read_me(ctx: AppContext = Depends(get_context)):
    """
    Current session: identity, profile, role flags and capabilities.

    `loading` stays true until the startup bootstrap has resolved.
    """
    return ctx.session.snapshot()


@router.post("/sign-in", response_model=Identity)
async def sign_in(payload: SignInRequest, ctx: AppContext = Depends(get_context)):
    """
    Sign in with email and password.

    Every cached collection is reset right after, and the session is
    bootstrapped again for the new identity.
    """
    outcome = await ctx.session.sign_in(payload.email, payload.password)
    return outcome.unwrap_http()


@router.post("/sign-up", response_model=Identity, status_code=status.HTTP_201_CREATED)
async def sign_up(payload: SignUpRequest, ctx: AppContext = Depends(get_context)):
    """
    Register a new account. The profile (first/last name, role) is created
    by the remote store from the sign-up metadata.
    """
    outcome = await ctx.session.sign_up(
        payload.email,
        payload.password,
        profile=payload,
        confirm_password=payload.confirm_password,
    )
    return outcome.unwrap_http()


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(ctx: AppContext = Depends(get_context)):
    outcome = await ctx.session.sign_out()
    outcome.unwrap_http()
