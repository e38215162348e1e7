"""OpenID Connect login gate.

The identity provider does the actual authentication; we only keep the ID
token claims in the signed session cookie and check for their presence.
"""
import functools
import urllib.parse
from typing import Optional

from authlib.integrations.base_client import OAuthError
from authlib.integrations.flask_client import OAuth
from flask import Blueprint, current_app, redirect, request, session, url_for

from vatinqr_common.request_context import get_client_ip, get_or_set_req_id

from .logging_setup import app_log, audit_logger

OAUTH_KEY = 'vatinqr.oauth'
CLIENT_NAME = 'idp'
SESSION_USER = 'user'
SESSION_RETURN_TO = 'return_to'

bp = Blueprint('oidc', __name__)


def init_app(app) -> None:
    oauth = OAuth(app)
    issuer = (app.config.get('OIDC_ISSUER_BASE_URL') or '').rstrip('/')
    oauth.register(
        name=CLIENT_NAME,
        client_id=app.config.get('OIDC_CLIENT_ID'),
        client_secret=app.config.get('OIDC_CLIENT_SECRET'),
        server_metadata_url=f"{issuer}/.well-known/openid-configuration",
        client_kwargs={'scope': 'openid profile email'},
    )
    app.extensions[OAUTH_KEY] = oauth
    app.register_blueprint(bp)


def get_client():
    return current_app.extensions[OAUTH_KEY].create_client(CLIENT_NAME)


def is_authenticated() -> bool:
    return bool(session.get(SESSION_USER))


def current_user_name() -> Optional[str]:
    user = session.get(SESSION_USER)
    if not user:
        return None
    return user.get('name') or user.get('sub')


def _safe_return_to(target: Optional[str]) -> str:
    # Only same-site relative paths; anything else goes home.
    if not target or not target.startswith('/') or target.startswith('//'):
        return '/'
    return target


def requires_auth(view):
    @functools.wraps(view)
    def wrapped(*args, **kwargs):
        if not is_authenticated():
            audit_logger.audit(
                event='auth_required',
                actor='anonymous',
                result='redirect',
                ip=get_client_ip(),
                req=get_or_set_req_id(),
                path=request.path,
                method=request.method,
            )
            return redirect(url_for('oidc.login', returnTo=request.full_path.rstrip('?')))
        return view(*args, **kwargs)
    return wrapped


def _external_url(endpoint: str) -> str:
    return current_app.config['APP_BASE_URL'].rstrip('/') + url_for(endpoint)


@bp.get('/login')
def login():
    session[SESSION_RETURN_TO] = _safe_return_to(request.args.get('returnTo'))
    return get_client().authorize_redirect(_external_url('oidc.callback'))


@bp.get('/callback')
def callback():
    try:
        token = get_client().authorize_access_token()
    except OAuthError as e:
        app_log('WARNING', 'login failed', ip=get_client_ip(), req=get_or_set_req_id(), error=e.error)
        return 'Login failed', 401
    user = token.get('userinfo') or {}
    if not user.get('sub'):
        app_log('WARNING', 'id token without subject', ip=get_client_ip(), req=get_or_set_req_id())
        return 'Login failed', 401

    return_to = _safe_return_to(session.pop(SESSION_RETURN_TO, None))
    session[SESSION_USER] = {k: user.get(k) for k in ('sub', 'name', 'email') if user.get(k)}
    audit_logger.audit(
        event='login',
        actor=user['sub'],
        ip=get_client_ip(),
        req=get_or_set_req_id(),
    )
    return redirect(return_to)


@bp.get('/logout')
def logout():
    actor = (session.get(SESSION_USER) or {}).get('sub', 'anonymous')
    session.clear()
    audit_logger.audit(event='logout', actor=actor, ip=get_client_ip(), req=get_or_set_req_id())

    if not current_app.config.get('OIDC_IDP_LOGOUT'):
        return redirect('/')
    end_session = get_client().load_server_metadata().get('end_session_endpoint')
    if not end_session:
        return redirect('/')
    query = urllib.parse.urlencode({
        'post_logout_redirect_uri': current_app.config['APP_BASE_URL'],
        'client_id': current_app.config.get('OIDC_CLIENT_ID') or '',
    })
    sep = '&' if '?' in end_session else '?'
    return redirect(f"{end_session}{sep}{query}")
