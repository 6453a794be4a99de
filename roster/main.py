# roster/main.py
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roster.context import AppContext, create_context
from roster.core.config import get_settings

# Routers
from roster.routers.auth import router as auth_router
from roster.routers.notes import router as notes_router
from roster.routers.students import router as students_router
from roster.routers.view import router as view_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


def create_app(context: AppContext | None = None) -> FastAPI:
    """
    Build the API around one application context.

    Args:
        context: pre-built context (tests); None => create the local store
                 and Supabase client from settings at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        Startup:
          - Create (or adopt) the application context.
          - Start session bootstrap without waiting for it: requests are
            served immediately and report `loading` until it resolves.

        Shutdown:
          - Unsubscribe from auth state changes.
        """
        logger.info("🔄 Startup: Connecting to Supabase...")
        try:
            ctx = context or await create_context(settings)
        except Exception as e:
            logger.error(f"❌ Startup: Supabase client FAILED: {e}")
            raise
        app.state.context = ctx
        bootstrap = asyncio.create_task(ctx.session.bootstrap())
        logger.info("✅ Startup: client ready, restoring session in background.")
        yield
        await bootstrap
        await ctx.close()

    app = FastAPI(
        title=settings.PROJECT_NAME or "Student Roster",
        version="0.1.0",
        lifespan=lifespan,
    )
    if context is not None:
        app.state.context = context

    # --- CORS configuration ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Versioned API prefix, e.g. /api/v1
    app.include_router(auth_router, prefix=settings.API_V1_STR)
    app.include_router(students_router, prefix=settings.API_V1_STR)
    app.include_router(view_router, prefix=settings.API_V1_STR)
    app.include_router(notes_router, prefix=settings.API_V1_STR)

    @app.get("/")
    def root():
        """Health check endpoint."""
        return {"status": "ok", "service": "student-roster"}

    return app


app = create_app()
