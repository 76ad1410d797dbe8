# identity/repositories/session_repo.py
import uuid
from datetime import datetime

from sqlalchemy import delete
from sqlmodel import Session, col, select

from identity.models.session import AuthSession


class SessionRepository:
    """
    Data access layer for AuthSession.

    Expiry is compared in SQL so stored and bound timestamps go through
    the same column type.
    """

    def get_active(self, session: Session, session_id: str, now: datetime) -> AuthSession | None:
        """Return the session if it exists and has not expired."""
        stmt = select(AuthSession).where(
            AuthSession.id == session_id,
            AuthSession.expires_at > now,
        )
        return session.exec(stmt).first()

    def create(self, session: Session, auth_session: AuthSession) -> AuthSession:
        session.add(auth_session)
        session.commit()
        session.refresh(auth_session)
        return auth_session

    def delete(self, session: Session, session_id: str) -> None:
        session.exec(delete(AuthSession).where(AuthSession.id == session_id))
        session.commit()

    def delete_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        keep: str | None = None,
        commit: bool = True,
    ) -> None:
        """Delete every session of a user, optionally sparing one id."""
        stmt = delete(AuthSession).where(AuthSession.user_id == user_id)
        if keep is not None:
            stmt = stmt.where(AuthSession.id != keep)
        session.exec(stmt)
        if commit:
            session.commit()

    def delete_expired(self, session: Session, now: datetime) -> None:
        session.exec(delete(AuthSession).where(col(AuthSession.expires_at) <= now))
        session.commit()
