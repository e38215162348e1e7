import uuid

from flask import g, request as flask_request

# Optional header that an upstream proxy can set to correlate its logs with ours.
REQ_ID_HEADER = 'X-VATINQR-REQ-ID'


def _uuid_hex() -> str:
    return uuid.uuid4().hex


def get_or_set_req_id(req=None) -> str:
    """Get request id for the current request.

    Priority:
    1) header X-VATINQR-REQ-ID (if provided)
    2) cached value in flask.g
    3) generated UUID4 hex
    """
    r = req or flask_request
    hdr = (r.headers.get(REQ_ID_HEADER) or '').strip()
    if hdr:
        g.req_id = hdr
        return hdr

    if getattr(g, 'req_id', None):
        return g.req_id

    rid = _uuid_hex()
    g.req_id = rid
    return rid


def get_client_ip(req=None) -> str:
    """Best-effort client IP detection.

    Priority:
    1) first entry of X-Forwarded-For
    2) remote_addr
    """
    r = req or flask_request
    xff = (r.headers.get('X-Forwarded-For') or '').strip()
    if xff:
        return xff.split(',')[0].strip()
    return (getattr(r, 'remote_addr', None) or '').strip() or 'unknown'


def set_response_headers(resp, req=None):
    """Attach request id into response headers."""
    resp.headers.setdefault(REQ_ID_HEADER, get_or_set_req_id(req))
    return resp
