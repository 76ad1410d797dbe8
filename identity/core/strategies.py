# identity/core/strategies.py
"""
Login strategies and the registry that decides which ones are active.

AuthStrategy = LocalStrategy | FederatedStrategy (google, naver, kakao).
Each has one `resolve(...) -> User`. Strategies are built once at startup,
hold no per-request state, and are shared across requests.
"""
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta

from fastapi import Request
from fastapi.responses import RedirectResponse
from fastapi_sso import GoogleSSO, KakaoSSO, NaverSSO
from fastapi_sso.sso.base import OpenID, SSOBase
from sqlmodel import Session

from identity.core.config import Settings
from identity.core.errors import ProviderFailure
from identity.core.security import PasswordHasher
from identity.models.user import User
from identity.repositories.session_repo import SessionRepository
from identity.repositories.user_repo import UserRepository
from identity.services.account_service import AccountService
from identity.services.federated_service import FederatedIdentityService, ProviderAssertion
from identity.services.session_service import SessionService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalCredentials:
    email: str | None
    password: str | None


class LocalStrategy:
    name = "local"

    def __init__(self, accounts: AccountService):
        self.accounts = accounts

    def resolve(self, session: Session, credentials: LocalCredentials) -> User:
        return self.accounts.authenticate(session, credentials.email, credentials.password)


class KakaoAccountSSO(KakaoSSO):
    """
    Kakao client that reads the account email and avatar.

    Kakao nests them under `kakao_account.email` and
    `properties.profile_image`.
    """

    async def openid_from_response(self, response: dict, session=None) -> OpenID:
        account = response.get("kakao_account") or {}
        properties = response.get("properties") or {}
        profile = account.get("profile") or {}
        return OpenID(
            id=str(response["id"]),
            email=account.get("email"),
            display_name=properties.get("nickname") or profile.get("nickname"),
            picture=properties.get("profile_image") or profile.get("profile_image_url"),
            provider=self.provider,
        )


def assertion_from_openid(provider: str, openid: OpenID | None) -> ProviderAssertion:
    """Normalize a provider profile into a ProviderAssertion."""
    if openid is None or not openid.id:
        raise ProviderFailure(f"{provider} returned no account id")
    display_name = openid.display_name
    if not display_name:
        display_name = " ".join(p for p in (openid.first_name, openid.last_name) if p) or None
    return ProviderAssertion(
        provider=provider,
        provider_id=str(openid.id),
        email=openid.email,
        display_name=display_name,
        avatar_url=openid.picture,
    )


class FederatedStrategy:
    """
    One external identity provider.

    SSO clients keep handshake state, so every handshake gets its own
    client from `sso_factory`; the strategy itself stays stateless.
    """

    def __init__(
        self,
        provider: str,
        sso_factory: Callable[[], SSOBase],
        identities: FederatedIdentityService,
    ):
        self.provider = provider
        self.sso_factory = sso_factory
        self.identities = identities

    async def login_redirect(self) -> RedirectResponse:
        """Redirect to the provider's consent screen."""
        sso = self.sso_factory()
        async with sso:
            return await sso.get_login_redirect()

    async def verify(self, request: Request) -> ProviderAssertion:
        """
        Complete the handshake from the callback request.

        Raises:
            ProviderFailure: the provider rejected or did not return an account.
        """
        sso = self.sso_factory()
        try:
            async with sso:
                openid = await sso.verify_and_process(request)
        except Exception as exc:
            logger.exception("%s handshake failed", self.provider)
            raise ProviderFailure() from exc
        return assertion_from_openid(self.provider, openid)

    def resolve(self, session: Session, assertion: ProviderAssertion) -> User:
        return self.identities.link_or_create_federated_user(session, assertion)


SSO_CLASSES: dict[str, type[SSOBase]] = {
    "google": GoogleSSO,
    "naver": NaverSSO,
    "kakao": KakaoAccountSSO,
}


@dataclass(frozen=True)
class AuthConfig:
    """
    Everything the HTTP layer needs to authenticate, built once per app.

    Stored on `app.state.auth_config`; read through `get_auth_config`.
    """

    accounts: AccountService
    sessions: SessionService
    local: LocalStrategy
    federated: Mapping[str, FederatedStrategy] = field(default_factory=dict)
    session_ttl: timedelta = timedelta(weeks=1)
    cookie_name: str = "sid"
    cookie_secure: bool = False
    cookie_samesite: str = "lax"


def _sso_factory(settings: Settings, provider: str, client_id: str, client_secret: str):
    redirect_uri = f"{settings.PUBLIC_BASE_URL.rstrip('/')}{settings.API_PREFIX}/auth/{provider}/callback"
    sso_class = SSO_CLASSES[provider]

    def factory() -> SSOBase:
        return sso_class(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            allow_insecure_http=redirect_uri.startswith("http://"),
        )

    return factory


def build_auth_config(settings: Settings) -> AuthConfig:
    """
    Assemble strategies from settings.

    A provider is only registered when both its client id and secret are
    configured; otherwise that login path is silently absent.
    """
    hasher = PasswordHasher(
        n=settings.SCRYPT_N,
        r=settings.SCRYPT_R,
        p=settings.SCRYPT_P,
        dklen=settings.SCRYPT_DKLEN,
    )
    user_repo = UserRepository()
    accounts = AccountService(user_repo, hasher)
    identities = FederatedIdentityService(
        user_repo,
        allow_email_linking=settings.FEDERATED_EMAIL_LINKING,
    )

    federated: dict[str, FederatedStrategy] = {}
    for provider in SSO_CLASSES:
        credentials = settings.provider_credentials(provider)
        if credentials is None:
            continue
        federated[provider] = FederatedStrategy(
            provider,
            _sso_factory(settings, provider, *credentials),
            identities,
        )
        logger.info("%s login enabled", provider.capitalize())

    return AuthConfig(
        accounts=accounts,
        sessions=SessionService(SessionRepository(), user_repo),
        local=LocalStrategy(accounts),
        federated=federated,
        session_ttl=timedelta(seconds=settings.SESSION_TTL_SECONDS),
        cookie_name=settings.SESSION_COOKIE_NAME,
        cookie_secure=settings.SESSION_COOKIE_SECURE,
        cookie_samesite=settings.SESSION_COOKIE_SAMESITE,
    )
