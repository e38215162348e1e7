from urllib.parse import parse_qs, urlparse

from authlib.integrations.base_client import OAuthError
from flask import session

from vatinqr_web import oidc


def test_login_redirects_to_idp(client, idp):
    resp = client.get("/login?returnTo=/qr/abc")
    assert resp.status_code == 302

    location = urlparse(resp.headers["Location"])
    assert f"{location.scheme}://{location.netloc}{location.path}" == "https://idp.example.test/authorize"
    query = parse_qs(location.query)
    assert query["client_id"] == ["client-123"]
    assert query["response_type"] == ["code"]
    assert query["redirect_uri"] == ["https://localhost:4080/callback"]
    assert "openid" in query["scope"][0].split()

    with client.session_transaction() as sess:
        assert sess[oidc.SESSION_RETURN_TO] == "/qr/abc"


def test_login_ignores_offsite_return_to(client, idp):
    client.get("/login?returnTo=//evil.example/x")
    with client.session_transaction() as sess:
        assert sess[oidc.SESSION_RETURN_TO] == "/"


def test_callback_stores_user(client, idp, monkeypatch):
    monkeypatch.setattr(idp, "authorize_access_token", lambda: {
        "access_token": "at",
        "userinfo": {"sub": "auth0|ana", "name": "Ana Horvat", "email": "ana@example.test"},
    })
    with client.session_transaction() as sess:
        sess[oidc.SESSION_RETURN_TO] = "/generate-qr"

    resp = client.get("/callback?code=xyz&state=s")
    assert resp.status_code == 302
    assert resp.headers["Location"] == "/generate-qr"
    with client.session_transaction() as sess:
        assert sess[oidc.SESSION_USER] == {
            "sub": "auth0|ana", "name": "Ana Horvat", "email": "ana@example.test",
        }

    assert client.get("/generate-qr").status_code == 200


def test_callback_without_subject(client, idp, monkeypatch):
    monkeypatch.setattr(idp, "authorize_access_token", lambda: {"access_token": "at"})
    resp = client.get("/callback?code=xyz&state=s")
    assert resp.status_code == 401
    with client.session_transaction() as sess:
        assert oidc.SESSION_USER not in sess


def test_logout_goes_through_idp(client, idp, login):
    login()
    resp = client.get("/logout")
    assert resp.status_code == 302

    location = urlparse(resp.headers["Location"])
    assert location.path == "/oidc/logout"
    query = parse_qs(location.query)
    assert query["post_logout_redirect_uri"] == ["https://localhost:4080"]
    assert query["client_id"] == ["client-123"]
    with client.session_transaction() as sess:
        assert oidc.SESSION_USER not in sess


def test_logout_without_idp_logout(app, client, idp, login):
    app.config["OIDC_IDP_LOGOUT"] = False
    login()
    resp = client.get("/logout")
    assert resp.headers["Location"] == "/"


def test_current_user_name(app):
    with app.test_request_context("/"):
        assert oidc.current_user_name() is None
        assert oidc.is_authenticated() is False
        session[oidc.SESSION_USER] = {"sub": "auth0|1"}
        assert oidc.current_user_name() == "auth0|1"
        session[oidc.SESSION_USER] = {"sub": "auth0|1", "name": "Ana"}
        assert oidc.current_user_name() == "Ana"
        assert oidc.is_authenticated() is True


def test_callback_state_mismatch(client, idp, monkeypatch):
    def mismatch():
        raise OAuthError(error="mismatching_state")
    monkeypatch.setattr(idp, "authorize_access_token", mismatch)

    assert client.get("/callback?code=xyz&state=bad").status_code == 401
