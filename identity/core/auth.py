# identity/core/auth.py
"""
Session gate.

Request states: unauthenticated -> authenticated (valid session that
resolves to an existing user) -> authorized (role == "admin").

Every request re-reads the User behind its session. Errors from the store
propagate as 500s, so a failed lookup never turns into access.
"""
import logging

from fastapi import Depends, Request, Response
from sqlmodel import Session

from identity.core.errors import Forbidden, Unauthorized
from identity.core.strategies import AuthConfig
from identity.database import get_session
from identity.models.session import AuthSession
from identity.models.user import User

logger = logging.getLogger(__name__)


def get_auth_config(request: Request) -> AuthConfig:
    """Return the AuthConfig built for this application."""
    return request.app.state.auth_config


def get_session_id(request: Request, config: AuthConfig = Depends(get_auth_config)) -> str | None:
    """Read the session id cookie, if any."""
    return request.cookies.get(config.cookie_name) or None


def get_current_user(
    session_id: str | None = Depends(get_session_id),
    config: AuthConfig = Depends(get_auth_config),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the current user from the session cookie.

    Returns:
        User if the session is valid and its user still exists, else None.
    """
    return config.sessions.resolve(session, session_id)


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """
    Enforce authentication (isAuthenticated).

    Raises:
        Unauthorized: no valid session.
    """
    if user is None:
        raise Unauthorized()
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """
    Enforce admin role (isAdmin), checked against the freshly loaded User.

    Raises:
        Unauthorized: no valid session.
        Forbidden: role is not admin.
    """
    if user.role != "admin":
        logger.info("Admin access denied for user %s (role=%s)", user.id, user.role)
        raise Forbidden()
    return user


# ----- Cookie helpers -----


def set_session_cookie(response: Response, auth_session: AuthSession, config: AuthConfig) -> None:
    response.set_cookie(
        key=config.cookie_name,
        value=auth_session.id,
        max_age=int(config.session_ttl.total_seconds()),
        httponly=True,
        secure=config.cookie_secure,
        samesite=config.cookie_samesite,
        path="/",
    )


def clear_session_cookie(response: Response, config: AuthConfig) -> None:
    response.delete_cookie(
        key=config.cookie_name,
        httponly=True,
        secure=config.cookie_secure,
        samesite=config.cookie_samesite,
        path="/",
    )
