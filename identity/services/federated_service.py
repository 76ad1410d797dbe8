# identity/services/federated_service.py
import logging
from dataclasses import dataclass

from sqlmodel import Session

from identity.core.errors import AccountLinkConflict, EmailRequiredForSignup
from identity.models.user import PROVIDER_ID_FIELDS, User, utcnow
from identity.repositories.user_repo import UniqueViolation, UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderAssertion:
    """What a provider tells us after a successful handshake."""

    provider: str
    provider_id: str
    email: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None

    def __post_init__(self):
        if self.provider not in PROVIDER_ID_FIELDS:
            raise ValueError(f"unknown provider: {self.provider}")
        if not self.provider_id:
            raise ValueError("provider_id is required")


def split_display_name(display_name: str | None) -> tuple[str, str]:
    """
    Best-effort (first, last) split on the first space.

    >>> split_display_name("Gil-dong Hong Jr")
    ('Gil-dong', 'Hong Jr')
    >>> split_display_name(None)
    ('User', '')
    """
    parts = (display_name or "").split()
    if not parts:
        return "User", ""
    return parts[0], " ".join(parts[1:])


class FederatedIdentityService:
    """
    Resolve a provider assertion to exactly one canonical User.

    Order:
      1. user already linked to (provider, provider_id)
      2. user owning the asserted email, which gets the provider linked
         (replacing an older id for the same provider)
      3. a new user (requires an email)
    then refresh the provider link, newly learned email, names and avatar.

    Never writes role, is_verified, real_name or phone_number.

    Linking by email trusts the provider's email claim: whoever controls
    that address at one provider can attach a second provider to the
    account. `allow_email_linking=False` turns step 2 into a conflict.
    """

    def __init__(self, repo: UserRepository, allow_email_linking: bool = True):
        self.repo = repo
        self.allow_email_linking = allow_email_linking

    def link_or_create_federated_user(self, session: Session, assertion: ProviderAssertion) -> User:
        """
        Raises:
            EmailRequiredForSignup: no link exists and the provider gave no email.
            AccountLinkConflict: the email belongs to a user who cannot take this link.
        """
        email = (assertion.email or "").strip() or None

        user = self._find_existing(session, assertion, email)
        if user is None:
            if email is None:
                logger.info(
                    "Refusing %s signup for %s: provider returned no email",
                    assertion.provider,
                    assertion.provider_id,
                )
                raise EmailRequiredForSignup()
            return self._create(session, assertion, email)

        return self._refresh(session, user, assertion, email)

    # ----- steps -----

    def _find_existing(
        self,
        session: Session,
        assertion: ProviderAssertion,
        email: str | None,
    ) -> User | None:
        user = self.repo.get_by_provider_id(session, assertion.provider, assertion.provider_id)
        if user is not None:
            return user
        if email is None:
            return None

        user = self.repo.get_by_email(session, email)
        if user is None:
            return None

        if not self.allow_email_linking:
            logger.warning(
                "Email linking disabled: %s account %s matches user %s by email",
                assertion.provider,
                assertion.provider_id,
                user.id,
            )
            raise AccountLinkConflict()

        linked = user.provider_id(assertion.provider)
        if linked and linked != assertion.provider_id:
            logger.warning(
                "Replacing %s link %s of user %s with %s",
                assertion.provider,
                linked,
                user.id,
                assertion.provider_id,
            )

        logger.warning(
            "Linking %s account %s to existing user %s by email",
            assertion.provider,
            assertion.provider_id,
            user.id,
        )
        return user

    def _create(self, session: Session, assertion: ProviderAssertion, email: str) -> User:
        first_name, last_name = split_display_name(assertion.display_name)
        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            profile_image_url=assertion.avatar_url,
            role="user",
        )
        user.set_provider_id(assertion.provider, assertion.provider_id)

        try:
            user = self.repo.create(session, user)
        except UniqueViolation:
            # A concurrent login created or linked the same identity.
            logger.info(
                "Concurrent %s signup for %s, re-resolving",
                assertion.provider,
                assertion.provider_id,
            )
            existing = self._find_existing(session, assertion, email)
            if existing is None:
                raise
            return self._refresh(session, existing, assertion, email)

        logger.info("Created user %s from %s login", user.id, assertion.provider)
        return user

    def _refresh(
        self,
        session: Session,
        user: User,
        assertion: ProviderAssertion,
        email: str | None,
        learn_email: bool = True,
    ) -> User:
        # Look up before mutating so autoflush cannot write half a refresh.
        adopt_email = False
        if learn_email and email and not user.email:
            adopt_email = self.repo.get_by_email(session, email) is None
            if not adopt_email:
                logger.info("Not adopting email for user %s: already in use", user.id)

        user.set_provider_id(assertion.provider, assertion.provider_id)
        if adopt_email:
            user.email = email
        if assertion.display_name and assertion.display_name.strip():
            user.first_name, user.last_name = split_display_name(assertion.display_name)
        if assertion.avatar_url:
            user.profile_image_url = assertion.avatar_url
        user.updated_at = utcnow()

        try:
            return self.repo.update(session, user)
        except UniqueViolation:
            winner = self.repo.get_by_provider_id(
                session, assertion.provider, assertion.provider_id
            )
            if winner is not None and winner.id != user.id:
                # Someone else linked it in the meantime; they are canonical.
                return winner
            if learn_email:
                # The newly learned email was claimed concurrently.
                return self._refresh(session, user, assertion, email, learn_email=False)
            raise
