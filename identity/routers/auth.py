# identity/routers/auth.py
import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from identity.core.auth import (
    clear_session_cookie,
    get_auth_config,
    get_session_id,
    require_auth,
    set_session_cookie,
)
from identity.core.errors import AuthError, NotFound
from identity.core.strategies import AuthConfig, FederatedStrategy, LocalCredentials
from identity.database import get_session
from identity.models.user import User
from identity.schemas.auth import LoginRequest, RegisterRequest
from identity.schemas.user import UserRead

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def _start_session(
    session: Session,
    response: Response,
    user: User,
    config: AuthConfig,
    previous_session_id: str | None,
) -> None:
    # A fresh id on every login; the old one is dead server-side.
    config.sessions.destroy(session, previous_session_id)
    auth_session = config.sessions.establish(session, user, config.session_ttl)
    set_session_cookie(response, auth_session, config)


# -------- Local --------


@router.post("/login", response_model=UserRead)
def login(
    payload: LoginRequest,
    response: Response,
    session: Session = Depends(get_session),
    config: AuthConfig = Depends(get_auth_config),
    previous_session_id: str | None = Depends(get_session_id),
):
    """
    Email/password login.

    Returns the User and sets the session cookie. Every failure is the
    same 401 `{message}`.
    """
    user = config.local.resolve(session, LocalCredentials(payload.username, payload.password))
    _start_session(session, response, user, config, previous_session_id)
    return user


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    response: Response,
    session: Session = Depends(get_session),
    config: AuthConfig = Depends(get_auth_config),
    previous_session_id: str | None = Depends(get_session_id),
):
    """
    Create a local account and log it in.

    400 on missing fields or an email that is already registered.
    """
    user = config.accounts.register(session, payload)
    _start_session(session, response, user, config, previous_session_id)
    return user


@router.post("/logout")
def logout(
    session: Session = Depends(get_session),
    config: AuthConfig = Depends(get_auth_config),
    session_id: str | None = Depends(get_session_id),
):
    """Destroy the session server-side and clear the cookie."""
    config.sessions.destroy(session, session_id)
    response = Response(status_code=status.HTTP_200_OK)
    clear_session_cookie(response, config)
    return response


@router.get("/auth/user", response_model=UserRead)
def read_current_user(current_user: User = Depends(require_auth)):
    """Return the authenticated user."""
    return current_user


# -------- Federated --------


def _get_strategy(provider: str, config: AuthConfig) -> FederatedStrategy:
    strategy = config.federated.get(provider)
    if strategy is None:
        raise NotFound()
    return strategy


@router.get("/auth/{provider}")
async def provider_login(provider: str, config: AuthConfig = Depends(get_auth_config)):
    """
    Redirect to the provider's consent screen.

    Only configured providers answer; others are 404.
    """
    strategy = _get_strategy(provider, config)
    return await strategy.login_redirect()


@router.get("/auth/{provider}/callback")
async def provider_callback(
    provider: str,
    request: Request,
    session: Session = Depends(get_session),
    config: AuthConfig = Depends(get_auth_config),
    previous_session_id: str | None = Depends(get_session_id),
):
    """
    Finish a provider login.

    Success: session cookie + redirect to /dashboard (admins) or /.
    Failure of any kind: redirect to /auth?error={provider}_login_failed.
    """
    strategy = _get_strategy(provider, config)
    failure = RedirectResponse(
        url=f"/auth?error={provider}_login_failed",
        status_code=status.HTTP_302_FOUND,
    )

    try:
        assertion = await strategy.verify(request)
        user = await run_in_threadpool(strategy.resolve, session, assertion)
        target = "/dashboard" if user.role == "admin" else "/"
        response = RedirectResponse(url=target, status_code=status.HTTP_302_FOUND)
        await run_in_threadpool(
            _start_session, session, response, user, config, previous_session_id
        )
    except AuthError as exc:
        logger.warning("%s login failed: %s", provider, exc.message)
        return failure
    except Exception:
        logger.exception("%s login failed", provider)
        return failure

    return response
