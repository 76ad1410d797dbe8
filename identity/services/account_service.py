# identity/services/account_service.py
import logging
import secrets

from email_validator import EmailNotValidError, validate_email
from sqlmodel import Session

from identity.core.errors import (
    DuplicateAccount,
    InvalidCredentials,
    MalformedCredential,
    ValidationError,
)
from identity.core.security import PasswordHasher
from identity.models.user import NICKNAME_MAX_LENGTH, User, utcnow
from identity.repositories.user_repo import UniqueViolation, UserRepository
from identity.schemas.auth import RegisterRequest

logger = logging.getLogger(__name__)


def _clean(value: str | None) -> str:
    return value.strip() if value else ""


class AccountService:
    """
    Local email/password accounts.

    Responsibilities:
      - verify email + password logins without revealing which check failed
      - register new local accounts (role is always "user")
      - change or attach a password
      - ensure the bootstrap admin account exists
    """

    def __init__(self, repo: UserRepository, hasher: PasswordHasher):
        self.repo = repo
        self.hasher = hasher
        self._decoy_credential: str | None = None

    def _verify_decoy(self, password: str) -> None:
        """Spend one verify so rejected logins cost the same as a wrong password."""
        if self._decoy_credential is None:
            self._decoy_credential = self.hasher.hash(secrets.token_hex(16))
        self.hasher.verify(password, self._decoy_credential)

    # ----- Login -----

    def authenticate(self, session: Session, email: str | None, password: str | None) -> User:
        """
        Return the User for a valid email/password pair.

        Raises:
            InvalidCredentials: for every failure, whatever the cause.
        """
        email = _clean(email)
        if not email or not password:
            logger.info("Local login rejected: missing email or password")
            self._verify_decoy(password or "")
            raise InvalidCredentials()

        user = self.repo.get_by_email(session, email)
        if user is None:
            logger.info("Local login rejected: no account for %s", email)
            self._verify_decoy(password)
            raise InvalidCredentials()
        if not user.password_hash:
            logger.info("Local login rejected: account %s has no password", user.id)
            self._verify_decoy(password)
            raise InvalidCredentials()

        try:
            valid = self.hasher.verify(password, user.password_hash)
        except MalformedCredential:
            logger.error("Stored credential for user %s is corrupt", user.id)
            raise InvalidCredentials()

        if not valid:
            logger.info("Local login rejected: wrong password for user %s", user.id)
            raise InvalidCredentials()

        logger.info("Local login succeeded for user %s", user.id)
        return user

    # ----- Registration -----

    def register(self, session: Session, payload: RegisterRequest) -> User:
        """
        Create a local account.

        Rules:
          - email, password, real name and nickname are all required
          - email must be syntactically valid
          - nickname fits the nickname column
          - email must not belong to another user; the unique index on
            users.email settles concurrent registrations

        Raises:
            ValidationError, DuplicateAccount
        """
        email = _clean(payload.username)
        real_name = _clean(payload.real_name)
        nickname = _clean(payload.nickname)
        if not email or not payload.password or not real_name or not nickname:
            raise ValidationError("Email, password, real name and nickname are required")
        if len(nickname) > NICKNAME_MAX_LENGTH:
            raise ValidationError(f"Nickname must be at most {NICKNAME_MAX_LENGTH} characters")

        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            raise ValidationError("Invalid email address")

        if self.repo.get_by_email(session, email) is not None:
            raise DuplicateAccount()

        user = User(
            email=email,
            password_hash=self.hasher.hash(payload.password),
            real_name=real_name,
            nickname=nickname,
            role="user",
        )
        try:
            user = self.repo.create(session, user)
        except UniqueViolation:
            logger.info("Concurrent registration lost the race for %s", email)
            raise DuplicateAccount()

        logger.info("Registered local user %s", user.id)
        return user

    # ----- Password management -----

    def change_password(
        self,
        session: Session,
        user: User,
        current_password: str | None,
        new_password: str | None,
    ) -> User:
        """
        Replace the user's password, or attach a first one.

        An existing password must be confirmed. Users who only ever signed
        in through a provider may set one without confirmation.
        """
        if not new_password:
            raise ValidationError("New password is required")

        if user.password_hash:
            if not current_password:
                raise InvalidCredentials()
            try:
                valid = self.hasher.verify(current_password, user.password_hash)
            except MalformedCredential:
                logger.error("Stored credential for user %s is corrupt", user.id)
                valid = False
            if not valid:
                raise InvalidCredentials()

        user.password_hash = self.hasher.hash(new_password)
        user.updated_at = utcnow()
        return self.repo.update(session, user)

    # ----- Bootstrap -----

    def ensure_admin(self, session: Session, email: str, password: str) -> User:
        """
        Make sure `email` exists with role "admin".

        Creates the account with the given password when missing. An
        existing account is promoted; its password is only set if it has none.
        """
        user = self.repo.get_by_email(session, email)
        if user is None:
            logger.info("Creating bootstrap admin account %s", email)
            user = User(
                email=email,
                password_hash=self.hasher.hash(password),
                first_name="Admin",
                last_name="User",
                role="admin",
            )
            try:
                return self.repo.create(session, user)
            except UniqueViolation:
                # Another worker created it first.
                user = self.repo.get_by_email(session, email)
                if user is None:
                    raise

        changed = False
        if user.role != "admin":
            logger.info("Promoting bootstrap account %s to admin", email)
            user.role = "admin"
            changed = True
        if not user.password_hash:
            user.password_hash = self.hasher.hash(password)
            changed = True
        if changed:
            user.updated_at = utcnow()
            user = self.repo.update(session, user)
        return user
