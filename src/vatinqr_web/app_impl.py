import time

from flask import Flask, jsonify, render_template, request, session
from werkzeug.exceptions import HTTPException

import config as cfg
from vatinqr_common.request_context import get_client_ip, get_or_set_req_id, set_response_headers

from . import db_layer, oidc, qr_image, records, transport
from .logging_setup import app_log, audit_logger
from .oidc import requires_auth


def _default_config() -> dict:
    return {
        'SECRET_KEY': cfg.SECRET,
        'OIDC_CLIENT_ID': cfg.CLIENT_ID,
        'OIDC_CLIENT_SECRET': cfg.CLIENT_SECRET,
        'OIDC_ISSUER_BASE_URL': cfg.ISSUER_BASE_URL,
        'OIDC_IDP_LOGOUT': cfg.IDP_LOGOUT,
        'APP_BASE_URL': cfg.APP_BASE_URL,
        'EXTERNAL_URL': cfg.EXTERNAL_URL,
        'QR_PUBLIC_BASE': cfg.QR_PUBLIC_BASE,
        'QR_LIMIT_PER_VATIN': cfg.QR_LIMIT_PER_VATIN,
        'SESSION_TIMEOUT': cfg.SESSION_TIMEOUT,
        'PERMANENT_SESSION_LIFETIME': cfg.SESSION_TIMEOUT,
        'SESSION_COOKIE_SECURE': True,
        'SESSION_COOKIE_HTTPONLY': True,
        'SESSION_COOKIE_SAMESITE': 'Lax',
    }


def create_app(engine=None, **overrides) -> Flask:
    """Build the web app around an explicit database engine.

    `engine` defaults to one built from the DB_* / DATABASE_URL settings.
    Keyword overrides are applied on top of the env-driven Flask config.
    """
    app = Flask(__name__)
    app.config.update(_default_config())
    app.config.update(overrides)
    if not app.config['SECRET_KEY']:
        raise RuntimeError('SECRET must be set to sign session cookies')

    if engine is None:
        engine = db_layer.make_engine()
    db_layer.init_db(engine)
    app.extensions[db_layer.ENGINE_KEY] = engine

    if app.config['EXTERNAL_URL']:
        transport.trust_proxy(app)

    oidc.init_app(app)
    _register(app)
    return app


def _register(app: Flask) -> None:

    @app.before_request
    def _set_request_context():
        get_or_set_req_id()

    @app.before_request
    def check_session_timeout():
        session.permanent = True
        now = time.time()
        timeout = app.config['SESSION_TIMEOUT']
        if 'last_activity' in session and now - session['last_activity'] > timeout:
            session.clear()
        session['last_activity'] = now

    @app.after_request
    def _tag_response(resp):
        return set_response_headers(resp)

    @app.errorhandler(HTTPException)
    def _handle_http_exception(e: HTTPException):
        return jsonify({
            'ok': False,
            'error': e.name,
            'message': e.description,
        }), e.code

    @app.get('/')
    def index():
        try:
            total_qrs = records.count_all(db_layer.get_engine())
        except Exception as e:
            app_log('ERROR', 'failed to count qrs', ip=get_client_ip(), req=get_or_set_req_id(), error=repr(e))
            return 'Server error', 500
        return render_template(
            'index.html',
            total_qrs=total_qrs,
            is_authenticated=oidc.is_authenticated(),
            username=oidc.current_user_name(),
        )

    @app.get('/qr/<qr_id>')
    @requires_auth
    def qr_details(qr_id):
        try:
            record = records.get_record(db_layer.get_engine(), qr_id)
        except Exception as e:
            app_log('ERROR', 'failed to fetch qr', ip=get_client_ip(), req=get_or_set_req_id(), qr=qr_id, error=repr(e))
            return 'Server error', 500

        username = oidc.current_user_name()
        if record is None:
            audit_logger.audit(event='qr_view', actor=username or '-', result='not_found',
                               ip=get_client_ip(), req=get_or_set_req_id(), qr=qr_id)
            return 'QR code not found.', 404

        audit_logger.audit(event='qr_view', actor=username or '-', ip=get_client_ip(),
                           req=get_or_set_req_id(), qr=record.id)
        return render_template('qr-details.html', username=username, **record.to_view())

    @app.get('/generate-qr')
    @requires_auth
    def generate_qr_form():
        return render_template('generate-qr.html', username=oidc.current_user_name())

    @app.post('/generate-qr')
    @requires_auth
    def generate_qr():
        # Accept both JSON and form posts.
        if request.is_json:
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                data = {}
        else:
            data = request.form
        vatin = str(data.get('vatin') or '').strip()
        first_name = str(data.get('firstName') or '').strip()
        last_name = str(data.get('lastName') or '').strip()

        actor = oidc.current_user_name() or '-'
        limit = app.config['QR_LIMIT_PER_VATIN']
        try:
            record = records.create_record(db_layer.get_engine(), vatin, first_name, last_name, limit=limit)
            url = qr_image.lookup_url(app.config['QR_PUBLIC_BASE'], record.id)
            qr_code = qr_image.data_url(url)
        except records.MissingFields:
            audit_logger.audit(event='qr_create', actor=actor, result='fail', reason='missing_fields',
                               ip=get_client_ip(), req=get_or_set_req_id())
            return jsonify({'error': "Missing 'vatin', 'firstName', or 'lastName' in request body."}), 400
        except records.LimitReached:
            audit_logger.audit(event='qr_create', actor=actor, result='fail', reason='limit_reached',
                               ip=get_client_ip(), req=get_or_set_req_id(), vatin=vatin)
            return jsonify({
                'error': f"QR code limit reached for this VATIN. You can generate maximum {limit} QR codes per VATIN.",
            }), 400
        except Exception as e:
            app_log('ERROR', 'failed to generate qr', ip=get_client_ip(), req=get_or_set_req_id(), error=repr(e))
            return jsonify({'error': 'Server error while generating qr code.'}), 500

        audit_logger.audit(event='qr_create', actor=actor, ip=get_client_ip(), req=get_or_set_req_id(),
                           qr=record.id, vatin=record.vatin)
        app_log('INFO', 'qr generated', ip=get_client_ip(), req=get_or_set_req_id(), qr=record.id)
        return render_template('qr-img.html', qrCode=qr_code, qrUrl=url, username=oidc.current_user_name())
