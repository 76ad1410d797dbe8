# identity/services/session_service.py
import logging
import secrets
import uuid
from datetime import timedelta

from sqlmodel import Session

from identity.models.session import AuthSession
from identity.models.user import User, utcnow
from identity.repositories.session_repo import SessionRepository
from identity.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)


class SessionService:
    """
    Server-side sessions.

    A session only maps an opaque id to a user id. `resolve` re-reads the
    User on every call, so role changes and deletions apply on the next
    request. Nothing here is cached between requests.
    """

    def __init__(self, repo: SessionRepository, user_repo: UserRepository):
        self.repo = repo
        self.user_repo = user_repo

    def establish(self, session: Session, user: User, ttl: timedelta) -> AuthSession:
        """Create a fresh session for `user`, reaping expired rows first."""
        now = utcnow()
        self.repo.delete_expired(session, now)
        auth_session = AuthSession(
            id=secrets.token_urlsafe(32),
            user_id=user.id,
            expires_at=now + ttl,
        )
        auth_session = self.repo.create(session, auth_session)
        logger.info("Session established for user %s", user.id)
        return auth_session

    def resolve(self, session: Session, session_id: str | None) -> User | None:
        """
        Return the User behind a session id, or None.

        None covers: no id, unknown id, expired session, deleted user.
        A session whose user is gone is removed on sight.
        """
        if not session_id:
            return None
        auth_session = self.repo.get_active(session, session_id, utcnow())
        if auth_session is None:
            return None

        user = self.user_repo.get_by_id(session, auth_session.user_id)
        if user is None:
            logger.info("Reaping orphaned session for missing user %s", auth_session.user_id)
            self.repo.delete(session, session_id)
            return None
        return user

    def destroy(self, session: Session, session_id: str | None) -> None:
        if session_id:
            self.repo.delete(session, session_id)

    def revoke_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        keep: str | None = None,
    ) -> None:
        """Delete all sessions of a user, except `keep` when given."""
        self.repo.delete_for_user(session, user_id, keep=keep)
        logger.info("Revoked sessions for user %s", user_id)
