"""Logging helpers for vatinqr-web.

- audit: JSON Lines written to audit.log
- app_log: plain text written to web.log (and echoed to stderr)

Directory defaults to /var/log/vatinqr (override with VATINQR_LOG_DIR);
falls back to <project>/logs when that is not writable.
"""

import os

import config as cfg
from vatinqr_common.structured_logging import StructuredLogger

_struct = StructuredLogger(
    app="vatinqr",
    component="web",
    base_dir=cfg.LOG_DIR,
    fallback_dir=os.path.join(cfg.PROJECT_ROOT, "logs"),
    echo_level=cfg.LOG_LEVEL,
)

audit_logger = _struct

app_log = _struct.log
