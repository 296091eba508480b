from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from authlib.integrations.starlette_client import OAuthError

from conftest import auth_headers
from localpress import config
from localpress.routers.auth import oauth, safe_next_path
from localpress.utils.auth import create_access_token, verify_token


@pytest.fixture
def google(monkeypatch):
    client = oauth.create_client("google")
    exchange = AsyncMock()
    monkeypatch.setattr(client, "authorize_access_token", exchange)
    return exchange


def _userinfo(**overrides):
    info = {"sub": "google-abc", "email": "reader@example.com", "name": "Pat Reader", "picture": None}
    info.update(overrides)
    return {"access_token": "t", "userinfo": info}


def test_token_round_trip():
    token = create_access_token({"user_id": 7, "email": "a@example.com"})

    assert verify_token(token)["user_id"] == 7
    assert verify_token("not-a-token") is None
    assert verify_token(create_access_token({"user_id": 7}, expires_delta=timedelta(seconds=-1))) is None


def test_safe_next_path():
    assert safe_next_path("/admin") == "/admin"
    assert safe_next_path("//evil.example.com") == "/auth/confirm"
    assert safe_next_path("https://evil.example.com") == "/auth/confirm"
    assert safe_next_path(None) == "/auth/confirm"


def test_me_with_bearer_token(client, make_user):
    user = make_user(username="pat")

    body = client.get("/auth/me", headers=auth_headers(user)).json()

    assert body["user"]["username"] == "pat"
    assert body["user"]["is_admin"] is False


def test_me_clears_invalid_cookie(client):
    response = client.get("/auth/me", headers={"Cookie": f"{config.TOKEN_COOKIE_NAME}=garbage"})

    assert response.json() == {"user": None}
    assert f"{config.TOKEN_COOKIE_NAME}=" in response.headers["set-cookie"]


def test_new_user_is_sent_to_pick_a_username(client, google):
    google.return_value = _userinfo()

    response = client.get("/auth/google/callback", follow_redirects=False)

    assert response.status_code in (302, 307)
    assert response.headers["location"] == "http://frontend.test/auth/set-username?returnTo=%2Fauth%2Fconfirm"
    assert f"{config.TOKEN_COOKIE_NAME}=" in response.headers["set-cookie"]


def test_returning_user_goes_straight_through(client, google, make_user):
    make_user(google_id="google-abc", email="reader@example.com", username="pat")
    google.return_value = _userinfo()

    response = client.get("/auth/google/callback", follow_redirects=False)

    assert response.headers["location"] == "http://frontend.test/auth/confirm"


def test_cookie_from_callback_authenticates(client, google):
    google.return_value = _userinfo()
    response = client.get("/auth/google/callback", follow_redirects=False)
    token = response.cookies[config.TOKEN_COOKIE_NAME]

    body = client.get("/auth/me", headers={"Cookie": f"{config.TOKEN_COOKIE_NAME}={token}"}).json()

    assert body["user"]["email"] == "reader@example.com"


def test_failed_exchange_redirects_to_error_page(client, google):
    google.side_effect = OAuthError(error="access_denied")

    response = client.get("/auth/google/callback", follow_redirects=False)

    assert response.headers["location"].startswith("http://frontend.test/auth/auth-code-error")


def test_logout_clears_cookie(client):
    response = client.post("/auth/logout")

    assert response.json() == {"ok": True}
    assert f"{config.TOKEN_COOKIE_NAME}=" in response.headers["set-cookie"]
