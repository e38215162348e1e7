#!/usr/bin/env python3
"""Thin wrapper for WSGI servers and local execution.
Keeps the public entrypoint as `app:app` while the implementation lives under src/.
"""
import os, sys

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from vatinqr_web.app_impl import create_app  # noqa: E402
from vatinqr_web import transport  # noqa: E402

app = create_app()

if __name__ == "__main__":
    # Standalone: HTTPS with server.cert/server.key.
    # With RENDER_EXTERNAL_URL set: plain HTTP behind the platform's proxy.
    transport.serve(app)
