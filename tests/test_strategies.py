"""
Tests for strategy registration and provider profile normalization
"""
import asyncio

import pytest
from fastapi_sso.sso.base import OpenID
from sqlmodel import select

from identity.core.config import Settings
from identity.core.errors import ProviderFailure
from identity.core.strategies import (
    KakaoAccountSSO,
    assertion_from_openid,
    build_auth_config,
)
from identity.main import create_app
from identity.models.user import User


def make_settings(**overrides):
    return Settings(_env_file=None, DATABASE_URL="sqlite://", SCRYPT_N=1024, **overrides)


class TestRegistry:
    """build_auth_config"""

    def test_no_providers_without_credentials(self):
        config = build_auth_config(make_settings())
        assert dict(config.federated) == {}
        assert config.local.name == "local"

    def test_only_fully_configured_providers_are_registered(self):
        config = build_auth_config(
            make_settings(
                GOOGLE_CLIENT_ID="gid",
                GOOGLE_CLIENT_SECRET="gsecret",
                NAVER_CLIENT_ID="nid",
                KAKAO_CLIENT_ID="kid",
                KAKAO_CLIENT_SECRET="ksecret",
            )
        )
        assert set(config.federated) == {"google", "kakao"}

    def test_callback_urls_and_clients(self):
        config = build_auth_config(
            make_settings(
                PUBLIC_BASE_URL="https://site.example.com/",
                KAKAO_CLIENT_ID="kid",
                KAKAO_CLIENT_SECRET="ksecret",
            )
        )
        sso = config.federated["kakao"].sso_factory()
        assert isinstance(sso, KakaoAccountSSO)
        assert sso.redirect_uri == "https://site.example.com/api/auth/kakao/callback"

    def test_each_handshake_gets_its_own_client(self):
        config = build_auth_config(
            make_settings(GOOGLE_CLIENT_ID="gid", GOOGLE_CLIENT_SECRET="gsecret")
        )
        factory = config.federated["google"].sso_factory
        assert factory() is not factory()

    def test_session_settings(self):
        config = build_auth_config(
            make_settings(SESSION_TTL_SECONDS=3600, SESSION_COOKIE_NAME="connect.sid")
        )
        assert config.session_ttl.total_seconds() == 3600
        assert config.cookie_name == "connect.sid"

    def test_app_exposes_configured_providers_only(self):
        from fastapi.testclient import TestClient

        app = create_app(make_settings(GOOGLE_CLIENT_ID="gid", GOOGLE_CLIENT_SECRET="gsecret"))
        assert set(app.state.auth_config.federated) == {"google"}
        client = TestClient(app)
        assert client.get("/api/auth/kakao", follow_redirects=False).status_code == 404


class TestProfileNormalization:

    def test_kakao_account_payload(self):
        sso = KakaoAccountSSO(client_id="kid", client_secret="ksecret", redirect_uri="http://x/cb")
        openid = asyncio.run(
            sso.openid_from_response(
                {
                    "id": 123456,
                    "properties": {
                        "nickname": "민지",
                        "profile_image": "https://k.kakaocdn.net/p.jpg",
                    },
                    "kakao_account": {"email": "minji@kakao.com"},
                }
            )
        )
        assertion = assertion_from_openid("kakao", openid)
        assert assertion.provider_id == "123456"
        assert assertion.email == "minji@kakao.com"
        assert assertion.display_name == "민지"
        assert assertion.avatar_url == "https://k.kakaocdn.net/p.jpg"

    def test_kakao_without_email_consent(self):
        sso = KakaoAccountSSO(client_id="kid", client_secret="ksecret", redirect_uri="http://x/cb")
        openid = asyncio.run(
            sso.openid_from_response({"id": 7, "properties": {"nickname": "anon"}})
        )
        assert assertion_from_openid("kakao", openid).email is None

    def test_display_name_falls_back_to_names(self):
        openid = OpenID(id="g1", first_name="Minji", last_name="Kim", provider="google")
        assert assertion_from_openid("google", openid).display_name == "Minji Kim"

    def test_missing_account_id(self):
        with pytest.raises(ProviderFailure):
            assertion_from_openid("google", OpenID(email="a@example.com", provider="google"))
        with pytest.raises(ProviderFailure):
            assertion_from_openid("google", None)


class TestBootstrapAdmin:
    """AccountService.ensure_admin"""

    def test_creates_admin(self, auth_config, db_session):
        user = auth_config.accounts.ensure_admin(db_session, "root@example.com", "rootpw")
        assert user.role == "admin"
        assert auth_config.accounts.authenticate(db_session, "root@example.com", "rootpw").id == user.id

    def test_promotes_existing_account_and_keeps_password(self, auth_config, db_session):
        original = auth_config.accounts.hasher.hash("mine")
        db_session.add(User(email="root@example.com", password_hash=original))
        db_session.commit()

        user = auth_config.accounts.ensure_admin(db_session, "root@example.com", "rootpw")
        assert user.role == "admin"
        assert user.password_hash == original
        assert len(db_session.exec(select(User)).all()) == 1

    def test_sets_password_when_missing(self, auth_config, db_session):
        db_session.add(User(email="root@example.com", google_id="g-root"))
        db_session.commit()

        auth_config.accounts.ensure_admin(db_session, "root@example.com", "rootpw")
        assert auth_config.accounts.authenticate(db_session, "root@example.com", "rootpw")
