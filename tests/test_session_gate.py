"""
Tests for the session gate and the admin auth routes.
"""

import pytest

from app import create_app
from config import TestingConfig
from core.exceptions import AuthenticationError, ConfigurationError
from core.token_verifier import INVALID_TOKEN, NO_TOKEN


@pytest.fixture
def admin_account(app):
    accounts = app.config["ADMIN_ACCOUNTS"]
    return accounts.create("Owner@Example.com", "correct horse", "Shop Owner")


class TestAuthorize:

    def test_missing_token(self, app):
        gate = app.config["SESSION_GATE"]
        with pytest.raises(AuthenticationError) as exc_info:
            gate.authorize(None)
        assert exc_info.value.reason == NO_TOKEN

    def test_non_admin_token(self, app, make_token):
        gate = app.config["SESSION_GATE"]
        with pytest.raises(AuthenticationError) as exc_info:
            gate.authorize(make_token(role="customer"))
        assert exc_info.value.reason == INVALID_TOKEN

    def test_admin_token(self, app, make_token):
        result = app.config["SESSION_GATE"].authorize(make_token())
        assert result.is_authenticated is True


class TestGatedRoutes:

    def test_no_token_is_401_and_handler_does_not_run(self, client, ledger, stored_order):
        response = client.put(
            f"/api/admin/order-items/{stored_order.product_lines[0].id}",
            json={"name": "Changed", "price": "1.00", "description": "x"},
        )
        assert response.status_code == 401
        assert response.get_json() == {"error": "Unauthorized"}
        # Nothing was written
        assert ledger.get_order(stored_order.id).product_lines[0].name == "Analog Mixer"

    def test_customer_token_is_401(self, client, make_token, stored_order):
        headers = {"Authorization": f"Bearer {make_token(role='customer')}"}
        response = client.get(f"/api/admin/orders/{stored_order.id}", headers=headers)
        assert response.status_code == 401
        assert response.get_json() == {"error": "Unauthorized"}

    def test_rejections_share_one_body(self, client, make_token, stored_order):
        url = f"/api/admin/orders/{stored_order.id}"
        bodies = [
            client.get(url).get_json(),
            client.get(url, headers={"Authorization": "Bearer garbage"}).get_json(),
            client.get(url, headers={
                "Authorization": f"Bearer {make_token(secret='another-secret-of-adequate-length!!')}"
            }).get_json(),
            client.get(url, headers={
                "Authorization": f"Bearer {make_token(expires_in=-60)}"
            }).get_json(),
        ]
        assert all(body == {"error": "Unauthorized"} for body in bodies)

    def test_cookie_token_is_accepted(self, client, make_token, stored_order):
        client.set_cookie("auth_token", make_token())
        response = client.get(f"/api/admin/orders/{stored_order.id}")
        assert response.status_code == 200
        assert response.get_json()["id"] == stored_order.id

    def test_bearer_header_wins_over_cookie(self, client, make_token, stored_order):
        client.set_cookie("auth_token", make_token(role="customer"))
        response = client.get(
            f"/api/admin/orders/{stored_order.id}",
            headers={"Authorization": f"Bearer {make_token()}"},
        )
        assert response.status_code == 200


class TestLogin:

    def test_login_sets_cookie(self, client, admin_account):
        response = client.post("/api/auth/login", json={
            "email": "owner@example.com", "password": "correct horse",
        })
        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert body["user"] == {"email": "owner@example.com", "name": "Shop Owner", "role": "admin"}

        set_cookie = response.headers["Set-Cookie"]
        assert set_cookie.startswith("auth_token=")
        assert "HttpOnly" in set_cookie
        assert "SameSite=Lax" in set_cookie

    def test_login_then_check(self, client, admin_account):
        client.post("/api/auth/login", json={
            "email": "owner@example.com", "password": "correct horse",
        })
        response = client.get("/api/auth/check")
        assert response.status_code == 200
        assert response.get_json()["user"]["email"] == "owner@example.com"

    @pytest.mark.parametrize("payload", [
        {"email": "owner@example.com", "password": "wrong"},
        {"email": "nobody@example.com", "password": "correct horse"},
        {"email": "owner@example.com"},
        {},
    ])
    def test_bad_credentials(self, client, admin_account, payload):
        response = client.post("/api/auth/login", json=payload)
        assert response.status_code == 401
        assert response.get_json() == {"error": "Unauthorized"}
        assert "Set-Cookie" not in response.headers


class TestLogout:

    def test_logout_without_cookie_succeeds(self, client):
        response = client.post("/api/auth/logout")
        assert response.status_code == 200
        assert response.get_json() == {"success": True}

    def test_logout_is_idempotent(self, client, make_token):
        client.set_cookie("auth_token", make_token())
        for _ in range(2):
            response = client.post("/api/auth/logout")
            assert response.status_code == 200
            set_cookie = response.headers["Set-Cookie"]
            assert set_cookie.startswith("auth_token=")
            assert "Max-Age=0" in set_cookie
        assert client.get_cookie("auth_token") is None

    def test_logout_requires_post(self, client, make_token):
        client.set_cookie("auth_token", make_token())
        response = client.get("/api/auth/logout")
        assert response.status_code == 405
        assert "Set-Cookie" not in response.headers
        assert client.get("/api/auth/check").status_code == 200

    def test_check_fails_after_logout(self, client, make_token):
        client.set_cookie("auth_token", make_token())
        assert client.get("/api/auth/check").status_code == 200
        client.post("/api/auth/logout")
        assert client.get("/api/auth/check").status_code == 401


class TestStartup:

    @pytest.mark.parametrize("secret", [None, ""])
    def test_missing_secret_refuses_to_start(self, secret):
        with pytest.raises(ConfigurationError):
            create_app(TestingConfig, overrides={"JWT_SECRET": secret})

    def test_health(self, client):
        assert client.get("/health").get_json() == {"status": "ok"}

    def test_testing_config_reports_testing_environment(self, app):
        assert TestingConfig.ENVIRONMENT == "testing"
        assert app.config["ENVIRONMENT"] == "testing"
