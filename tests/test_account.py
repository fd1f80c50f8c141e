import pytest
from fastapi.testclient import TestClient

from shortlink_app.auth.token_store import TokenStore, check_credentials
from shortlink_app.config import settings
from shortlink_app.errors import UnauthorizedError


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestTokenStore:
    def test_issue_and_verify(self):
        store = TokenStore(ttl=60)
        token = store.issue("admin")

        assert len(token) == 32
        assert store.verify(token) == "admin"

    def test_unknown_token(self):
        with pytest.raises(UnauthorizedError):
            TokenStore(ttl=60).verify("invalid.token.here")

    def test_expired_token(self):
        clock = FakeClock()
        store = TokenStore(ttl=60, clock=clock)
        token = store.issue("admin")

        clock.now = 60
        with pytest.raises(UnauthorizedError):
            store.verify(token)
        assert len(store) == 0

    def test_revoke(self):
        store = TokenStore(ttl=60)
        token = store.issue("admin")

        assert store.revoke(token) is True
        assert store.revoke(token) is False
        with pytest.raises(UnauthorizedError):
            store.verify(token)

    def test_sweep_expired(self):
        clock = FakeClock()
        store = TokenStore(ttl=10, clock=clock)
        store.issue("a")
        clock.now = 5
        store.issue("b")

        clock.now = 12
        assert store.sweep_expired() == 1
        assert len(store) == 1


def test_check_credentials():
    assert check_credentials("admin", "pw", "admin", "pw")
    assert not check_credentials("admin", "nope", "admin", "pw")
    assert not check_credentials("root", "pw", "admin", "pw")


class TestAccountAPI:
    def _login(self, client):
        response = client.post(
            "/api/account/login",
            json={"username": settings.admin_username, "password": settings.admin_password},
        )
        assert response.status_code == 200
        return response.json()["token"]

    def test_login_and_current_user(self, client: TestClient):
        token = self._login(client)

        response = client.get("/api/users/current", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json() == {"name": settings.admin_username}

    def test_token_grants_api_access(self, client: TestClient):
        token = self._login(client)
        response = client.post(
            "/api/shortens",
            json={"original_url": "https://example.com"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 201

    def test_login_wrong_password(self, client: TestClient):
        response = client.post(
            "/api/account/login",
            json={"username": settings.admin_username, "password": "wrong"},
        )
        assert response.status_code == 401
        assert response.json()["errcode"] == "40001"

    def test_logout_revokes_token(self, client: TestClient):
        token = self._login(client)
        headers = {"Authorization": f"Bearer {token}"}

        assert client.post("/api/account/logout", headers=headers).status_code == 204
        assert client.get("/api/users/current", headers=headers).status_code == 401

    def test_api_key_principal(self, client: TestClient, auth_headers):
        response = client.get("/api/users/current", headers=auth_headers)
        assert response.json() == {"name": "api-key"}

    def test_bad_bearer_token(self, client: TestClient):
        response = client.get("/api/users/current", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
