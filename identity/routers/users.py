# identity/routers/users.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from identity.core.auth import get_auth_config, get_session_id, require_auth
from identity.core.strategies import AuthConfig
from identity.database import get_session
from identity.models.user import User
from identity.repositories.session_repo import SessionRepository
from identity.repositories.user_repo import UserRepository
from identity.schemas.user import (
    PasswordChange,
    RealNameVerification,
    UserProfileUpdate,
    UserRead,
)
from identity.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

service = UserService(UserRepository(), SessionRepository())


@router.patch("/me", response_model=UserRead)
def update_me(
    payload: UserProfileUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Update the authenticated user's profile (partial update).

    Currently, only `nickname` is editable.
    """
    return service.update_me(session, current_user, payload)


@router.post("/verify-real-name", response_model=UserRead)
def verify_real_name(
    payload: RealNameVerification,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """Record real name and phone number and mark the user verified."""
    return service.verify_real_name(session, current_user, payload)


@router.post("/me/password", response_model=UserRead)
def change_password(
    payload: PasswordChange,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    config: AuthConfig = Depends(get_auth_config),
    session_id: str | None = Depends(get_session_id),
):
    """
    Change the password, or set a first one for provider-only accounts.

    Every other session of the user is signed out.
    """
    user = config.accounts.change_password(
        session,
        current_user,
        payload.current_password,
        payload.new_password,
    )
    config.sessions.revoke_for_user(session, user.id, keep=session_id)
    return user
