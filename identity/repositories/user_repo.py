# identity/repositories/user_repo.py
import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from identity.models.user import PROVIDER_ID_FIELDS, User


class UniqueViolation(Exception):
    """A write collided with a unique column (email or a provider id)."""


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
      - Translate unique-constraint failures into UniqueViolation,
        leaving the session rolled back and usable
    """

    # ----- Lookups -----

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def get_by_email(self, session: Session, email: str) -> User | None:
        """Return a User by unique email, or None if not found."""
        stmt = select(User).where(User.email == email)
        return session.exec(stmt).first()

    def get_by_provider_id(
        self,
        session: Session,
        provider: str,
        provider_id: str,
    ) -> User | None:
        """Return the User linked to (provider, provider_id), or None."""
        column = getattr(User, PROVIDER_ID_FIELDS[provider])
        stmt = select(User).where(column == provider_id)
        return session.exec(stmt).first()

    def list(self, session: Session, skip: int = 0, limit: int = 50) -> list[User]:
        """
        Paginated user listing, oldest first.

        Args:
            skip: offset rows (for paging)
            limit: max number of rows returned
        """
        stmt = select(User).order_by(User.created_at).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    # ----- Writes -----

    def _commit(self, session: Session, user: User) -> User:
        session.add(user)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise UniqueViolation(str(exc.orig)) from exc
        session.refresh(user)
        return user

    def create(self, session: Session, user: User) -> User:
        """
        Insert a new User and return the persisted row.

        Raises:
            UniqueViolation: if email or a provider id is already taken.
        """
        return self._commit(session, user)

    def update(self, session: Session, user: User) -> User:
        """
        Persist changes to an existing User.

        Raises:
            UniqueViolation: if the change collides with another user.
        """
        return self._commit(session, user)

    def delete(self, session: Session, user: User) -> None:
        """Delete a User. Callers remove the user's sessions first."""
        session.delete(user)
        session.commit()
