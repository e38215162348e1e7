"""Listener setup.

Two modes:
  - standalone: HTTPS on localhost using the local server.cert/server.key pair;
  - behind a TLS-terminating proxy (RENDER_EXTERNAL_URL set): plain HTTP on
    0.0.0.0:$PORT, trusting one hop of X-Forwarded-* headers.
"""
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from werkzeug.middleware.proxy_fix import ProxyFix

import config as cfg

from .logging_setup import app_log


@dataclass(frozen=True)
class Listener:
    host: str
    port: int
    ssl_context: Optional[Tuple[str, str]] = None
    external_url: str = ""

    @property
    def url(self) -> str:
        scheme = "https" if self.ssl_context else "http"
        return f"{scheme}://{self.host}:{self.port}/"


def listener(conf=cfg) -> Listener:
    if conf.EXTERNAL_URL:
        return Listener(host=conf.BIND, port=conf.PORT, external_url=conf.EXTERNAL_URL)
    for path in (conf.CERT_FILE, conf.KEY_FILE):
        if not os.path.isfile(path):
            raise FileNotFoundError(f"TLS material not found: {path}")
    return Listener(host=conf.BIND, port=conf.PORT, ssl_context=(conf.CERT_FILE, conf.KEY_FILE))


def trust_proxy(app) -> None:
    """Take scheme/host/client address from the terminating proxy."""
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)


def serve(app, lst: Optional[Listener] = None) -> None:
    lst = lst or listener()
    if lst.external_url:
        app_log('INFO', f"listening on {lst.url}, public url {lst.external_url}")
    else:
        app_log('INFO', f"listening on {lst.url}")
    app.run(host=lst.host, port=lst.port, ssl_context=lst.ssl_context, debug=False)
