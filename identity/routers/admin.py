# identity/routers/admin.py
import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from identity.core.auth import require_admin
from identity.database import get_session
from identity.repositories.session_repo import SessionRepository
from identity.repositories.user_repo import UserRepository
from identity.schemas.user import UserRead, UserRoleUpdate
from identity.services.user_service import UserService

router = APIRouter(
    prefix="/admin/users",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)

service = UserService(UserRepository(), SessionRepository())


@router.get("", response_model=list[UserRead])
def list_users(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    """
    List all users, oldest first.

    Pagination via skip/limit.
    """
    return service.list_users(session, skip, limit)


@router.patch("/{user_id}/role", response_model=UserRead)
def change_role(
    user_id: uuid.UUID,
    payload: UserRoleUpdate,
    session: Session = Depends(get_session),
):
    """
    Update a user's role.

    Allowed roles: admin, resident, user. Takes effect on the user's
    next request.
    """
    return service.update_role(session, user_id, payload)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """Delete a user; all of their sessions stop working immediately."""
    service.delete_user(session, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
