import os
import tempfile

# Must happen before vatinqr_web.logging_setup is imported.
os.environ["VATINQR_LOG_DIR"] = tempfile.mkdtemp(prefix="vatinqr-logs-")
os.environ.setdefault("VATINQR_LOG_LEVEL", "ERROR")

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402

from vatinqr_web import db_layer, oidc  # noqa: E402
from vatinqr_web.app_impl import create_app  # noqa: E402

IDP_METADATA = {
    "issuer": "https://idp.example.test/",
    "authorization_endpoint": "https://idp.example.test/authorize",
    "token_endpoint": "https://idp.example.test/oauth/token",
    "jwks_uri": "https://idp.example.test/.well-known/jwks.json",
    "end_session_endpoint": "https://idp.example.test/oidc/logout",
}


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'qrs.db'}")
    db_layer.init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def app(engine):
    return create_app(
        engine=engine,
        TESTING=True,
        SECRET_KEY="test-secret",
        SESSION_COOKIE_SECURE=False,
        OIDC_CLIENT_ID="client-123",
        OIDC_CLIENT_SECRET="client-secret",
        OIDC_ISSUER_BASE_URL="https://idp.example.test",
        OIDC_IDP_LOGOUT=True,
        APP_BASE_URL="https://localhost:4080",
        EXTERNAL_URL="",
        QR_PUBLIC_BASE="https://qr.example.test",
        QR_LIMIT_PER_VATIN=3,
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(name="Ana Horvat", sub="auth0|ana"):
        with client.session_transaction() as sess:
            sess["user"] = {"sub": sub, "name": name}
    return _login


@pytest.fixture
def idp(app, monkeypatch):
    """IdP client with discovery answered locally."""
    with app.app_context():
        client = oidc.get_client()
    monkeypatch.setattr(client, "load_server_metadata", lambda: dict(IDP_METADATA))
    return client
