"""
tests/test_auth_redirect.py -- Integration tests for login, logout, and the /main gate.

These tests exercise the session flow end-to-end through the real ASGI stack
using the web_client fixture (follow_redirects=False). We assert on redirect
Location headers directly -- following the redirect would hide them.

Coverage:
  - Unauthenticated /main -> 302 /
  - Correct credentials bind a session to the matching user id -> 302 /main
  - Wrong credentials never bind a session; error message on the entry page
  - Logout destroys the session; the old token is rejected afterwards
  - /main renders username and privilege flag from the session projection
  - A pre-login token is not carried into the authenticated session
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from core.config import get_settings

SID = get_settings().session_cookie_name


def _login(client: TestClient, username: str, password: str):
    return client.post("/login", data={"username": username, "password": password})


class TestGate:
    def test_main_without_session_redirects_to_entry(self, web_client: TestClient) -> None:
        resp = web_client.get("/main")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/"

    def test_main_with_unknown_token_redirects(self, web_client: TestClient) -> None:
        web_client.cookies.set(SID, "not-a-real-token")
        resp = web_client.get("/main")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/"

    def test_main_renders_username_and_privilege_flag(self, web_client, make_user) -> None:
        make_user("root", "rootpass", privileged=True)
        _login(web_client, "root", "rootpass")
        resp = web_client.get("/main")
        assert resp.status_code == 200
        assert 'id="username">root<' in resp.text
        assert "privileged-badge" in resp.text

    def test_main_hides_privileged_badge_for_regular_user(self, web_client, make_user) -> None:
        make_user("bob", "bobpass")
        _login(web_client, "bob", "bobpass")
        resp = web_client.get("/main")
        assert resp.status_code == 200
        assert "privileged-badge" not in resp.text


class TestLogin:
    def test_correct_credentials_bind_session_to_user(self, web_client, stores, make_user) -> None:
        alice = make_user("alice", "secret1")
        resp = _login(web_client, "alice", "secret1")

        assert resp.status_code == 302
        assert resp.headers["location"] == "/main"
        assert resp.headers["cache-control"] == "no-store"
        token = web_client.cookies.get(SID)
        assert token
        projection = stores.sessions.validate(token)
        assert projection is not None
        assert projection.user_id == alice.id
        assert projection.username == "alice"
        assert projection.is_privileged is False

    def test_session_cookie_is_http_only(self, web_client, make_user) -> None:
        make_user("alice", "secret1")
        resp = _login(web_client, "alice", "secret1")
        set_cookie = [v for v in resp.headers.get_list("set-cookie") if v.startswith(f"{SID}=")]
        assert set_cookie
        assert "httponly" in set_cookie[0].lower()

    def test_wrong_password_binds_no_session(self, web_client, make_user) -> None:
        make_user("alice", "secret1")
        resp = _login(web_client, "alice", "wrong")

        assert resp.status_code == 302
        assert resp.headers["location"] == "/"
        assert web_client.cookies.get(SID) is None

        page = web_client.get("/")
        assert page.status_code == 200
        assert "Wrong username or password, please try again." in page.text

    def test_unknown_user_gets_same_error(self, web_client) -> None:
        resp = _login(web_client, "nobody", "whatever")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/"
        assert web_client.cookies.get(SID) is None
        assert "Wrong username or password" in web_client.get("/").text

    def test_error_message_is_shown_once(self, web_client) -> None:
        _login(web_client, "nobody", "whatever")
        assert "Wrong username or password" in web_client.get("/").text
        assert "Wrong username or password" not in web_client.get("/").text

    def test_login_replaces_existing_session(self, web_client, stores, make_user) -> None:
        make_user("alice", "secret1")
        _login(web_client, "alice", "secret1")
        first = web_client.cookies.get(SID)
        _login(web_client, "alice", "secret1")
        second = web_client.cookies.get(SID)

        assert first != second
        assert stores.sessions.validate(first) is None
        assert stores.sessions.validate(second) is not None


class TestLogout:
    def test_logout_destroys_session(self, web_client, stores, make_user) -> None:
        make_user("alice", "secret1")
        _login(web_client, "alice", "secret1")
        token = web_client.cookies.get(SID)

        resp = web_client.get("/logout")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/"
        assert stores.sessions.validate(token) is None

        # Replaying the old token is treated as unauthenticated.
        web_client.cookies.set(SID, token)
        resp = web_client.get("/main")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/"

    def test_logout_without_session_is_harmless(self, web_client) -> None:
        resp = web_client.get("/logout")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/"
