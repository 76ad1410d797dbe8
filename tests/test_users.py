"""
Tests for profile, verification, password and admin user management routes
"""
import uuid

from conftest import PASSWORD, fetch_user, register, set_role


class TestProfile:

    def test_update_nickname(self, client):
        register(client, "nick@example.com")
        response = client.patch("/api/users/me", json={"nickname": "  newnick "})
        assert response.status_code == 200
        assert response.json()["nickname"] == "newnick"

    def test_profile_update_rejects_other_fields(self, client):
        register(client, "nick2@example.com")
        response = client.patch("/api/users/me", json={"role": "admin"})
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid request"}

    def test_requires_login(self, client):
        assert client.patch("/api/users/me", json={"nickname": "x"}).status_code == 401


class TestRealNameVerification:

    def test_verify(self, client):
        register(client, "verify@example.com")
        response = client.post(
            "/api/users/verify-real-name",
            json={"realName": "김철수", "phoneNumber": "010-0000-0000"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["isVerified"] is True
        assert body["realName"] == "김철수"
        assert body["phoneNumber"] == "010-0000-0000"
        assert body["role"] == "user"

    def test_missing_fields_are_400(self, client):
        register(client, "verify2@example.com")
        response = client.post("/api/users/verify-real-name", json={"realName": "김철수"})
        assert response.status_code == 400
        assert response.json() == {"message": "Name and phone number are required"}


class TestPasswordChange:

    def test_change_requires_current_password(self, client):
        register(client, "pw@example.com")
        response = client.post(
            "/api/users/me/password",
            json={"currentPassword": "wrong", "newPassword": "brand new"},
        )
        assert response.status_code == 401

    def test_change_revokes_other_sessions(self, client, make_client):
        register(client, "pw2@example.com")
        laptop = make_client()
        laptop.post("/api/login", json={"username": "pw2@example.com", "password": PASSWORD})

        response = client.post(
            "/api/users/me/password",
            json={"currentPassword": PASSWORD, "newPassword": "brand new"},
        )
        assert response.status_code == 200
        assert client.get("/api/auth/user").status_code == 200
        assert laptop.get("/api/auth/user").status_code == 401

        fresh = make_client()
        old = fresh.post("/api/login", json={"username": "pw2@example.com", "password": PASSWORD})
        assert old.status_code == 401
        new = fresh.post("/api/login", json={"username": "pw2@example.com", "password": "brand new"})
        assert new.status_code == 200

    def test_new_password_required(self, client):
        register(client, "pw3@example.com")
        response = client.post("/api/users/me/password", json={"currentPassword": PASSWORD})
        assert response.status_code == 400

    def test_provider_only_account_can_attach_password(
        self, client, make_client, engine, install_provider
    ):
        from identity.services.federated_service import ProviderAssertion

        install_provider(
            "naver",
            assertion=ProviderAssertion(provider="naver", provider_id="n-9", email="nv@example.com"),
        )
        client.get("/api/auth/naver/callback", follow_redirects=False)
        assert fetch_user(engine, "nv@example.com").password_hash is None

        response = client.post("/api/users/me/password", json={"newPassword": "first pw"})
        assert response.status_code == 200

        local = make_client().post(
            "/api/login", json={"username": "nv@example.com", "password": "first pw"}
        )
        assert local.status_code == 200


class TestAdminUsers:

    def _admin(self, client, engine):
        register(client, "admin@example.com")
        set_role(engine, "admin@example.com", "admin")

    def test_list_users_oldest_first(self, client, make_client, engine):
        self._admin(client, engine)
        register(make_client(), "second@example.com")

        response = client.get("/api/admin/users")
        assert response.status_code == 200
        emails = [u["email"] for u in response.json()]
        assert emails == ["admin@example.com", "second@example.com"]

        page = client.get("/api/admin/users?skip=1&limit=1").json()
        assert [u["email"] for u in page] == ["second@example.com"]

    def test_change_role(self, client, make_client, engine):
        self._admin(client, engine)
        member = make_client()
        member_id = register(member, "member@example.com").json()["id"]

        response = client.patch(f"/api/admin/users/{member_id}/role", json={"role": "resident"})
        assert response.status_code == 200
        assert response.json()["role"] == "resident"
        assert member.get("/api/auth/user").json()["role"] == "resident"

    def test_invalid_role_is_400(self, client, make_client, engine):
        self._admin(client, engine)
        member_id = register(make_client(), "member2@example.com").json()["id"]

        response = client.patch(f"/api/admin/users/{member_id}/role", json={"role": "superuser"})
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid role"}

    def test_unknown_user_is_404(self, client, engine):
        self._admin(client, engine)
        response = client.patch(f"/api/admin/users/{uuid.uuid4()}/role", json={"role": "user"})
        assert response.status_code == 404
        assert client.delete(f"/api/admin/users/{uuid.uuid4()}").status_code == 404
