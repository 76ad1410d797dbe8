# identity/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI
from sqlmodel import Session

from identity.core.config import Settings, get_settings
from identity.core.errors import register_exception_handlers
from identity.core.strategies import build_auth_config
from identity.database import create_db_and_tables, engine

# Import models so SQLModel metadata is populated before create_all()
from identity.models import user as _user_models  # noqa: F401
from identity.models import session as _session_models  # noqa: F401

# Routers
from identity.routers.auth import router as auth_router
from identity.routers.users import router as users_router
from identity.routers.admin import router as admin_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


def bootstrap_admin(app: FastAPI) -> None:
    """Ensure the configured bootstrap admin exists (no-op when unset)."""
    settings: Settings = app.state.settings
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return
    with Session(engine) as session:
        app.state.auth_config.accounts.ensure_admin(
            session, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD
        )
    logger.info("Bootstrap admin %s is ready.", settings.ADMIN_EMAIL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
      - Ensure the bootstrap admin account.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    logger.info("Startup: connecting to database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise
    bootstrap_admin(app)
    yield


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application with its auth strategies resolved from settings."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.auth_config = build_auth_config(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(auth_router, prefix=settings.API_PREFIX)
    app.include_router(users_router, prefix=settings.API_PREFIX)
    app.include_router(admin_router, prefix=settings.API_PREFIX)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "identity"}

    return app


app = create_app()
