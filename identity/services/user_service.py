# identity/services/user_service.py
import logging
import uuid

from sqlmodel import Session

from identity.core.errors import NotFound, ValidationError
from identity.models.user import ROLES, User, utcnow
from identity.repositories.session_repo import SessionRepository
from identity.repositories.user_repo import UserRepository
from identity.schemas.user import RealNameVerification, UserProfileUpdate, UserRoleUpdate

logger = logging.getLogger(__name__)


class UserService:
    """
    Profile and admin operations on User.

    Responsibilities:
      - self-service profile edits and real-name verification
      - admin listing, role changes and deletion
    """

    def __init__(self, repo: UserRepository, session_repo: SessionRepository):
        self.repo = repo
        self.session_repo = session_repo

    # ----- Self profile -----

    def update_me(self, session: Session, current_user: User, payload: UserProfileUpdate) -> User:
        """Partial profile update. Only `nickname` is editable."""
        if payload.nickname is not None:
            current_user.nickname = payload.nickname
            current_user.updated_at = utcnow()
        return self.repo.update(session, current_user)

    def verify_real_name(
        self,
        session: Session,
        current_user: User,
        payload: RealNameVerification,
    ) -> User:
        """Record the verified real name and phone number."""
        real_name = (payload.real_name or "").strip()
        phone_number = (payload.phone_number or "").strip()
        if not real_name or not phone_number:
            raise ValidationError("Name and phone number are required")

        current_user.real_name = real_name
        current_user.phone_number = phone_number
        current_user.is_verified = True
        current_user.updated_at = utcnow()
        return self.repo.update(session, current_user)

    # ----- Admin operations -----

    def list_users(self, session: Session, skip: int, limit: int) -> list[User]:
        """List users with pagination (admin only)."""
        return self.repo.list(session, skip=skip, limit=limit)

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        """
        Get a user by id (admin only).

        Raises:
            NotFound: if the user does not exist.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    def update_role(self, session: Session, user_id: uuid.UUID, payload: UserRoleUpdate) -> User:
        """Change a user's role (admin only)."""
        if payload.role not in ROLES:
            raise ValidationError("Invalid role")
        user = self.get_user(session, user_id)
        logger.info("Role of user %s changed from %s to %s", user.id, user.role, payload.role)
        user.role = payload.role
        user.updated_at = utcnow()
        return self.repo.update(session, user)

    def delete_user(self, session: Session, user_id: uuid.UUID) -> None:
        """Delete a user and every session that references it (admin only)."""
        user = self.get_user(session, user_id)
        self.session_repo.delete_for_user(session, user.id, commit=False)
        self.repo.delete(session, user)
        logger.info("Deleted user %s and their sessions", user_id)
