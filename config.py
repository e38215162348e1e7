import os

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))


def _load_env_file(path: str) -> None:
    """Best-effort parser for .env-style KEY=VALUE files.

    Lets a local checkout run without exporting every variable by hand.
    Existing os.environ keys are NOT overridden.
    """
    try:
        with open(path, 'r', encoding='utf-8', errors='ignore') as f:
            for raw in f:
                line = raw.strip()
                if not line or line.startswith('#'):
                    continue
                # allow "export KEY=VALUE"
                if line.startswith('export '):
                    line = line[len('export '):].lstrip()
                if '=' not in line:
                    continue
                key, val = line.split('=', 1)
                key = key.strip()
                val = val.strip()
                if not key or key in os.environ:
                    continue
                # Strip surrounding quotes if present
                if (len(val) >= 2) and ((val[0] == val[-1]) and val[0] in ('"', "'")):
                    val = val[1:-1]
                os.environ[key] = val
    except FileNotFoundError:
        return


_DEFAULT_ENV_CANDIDATES = [
    os.environ.get('VATINQR_ENV_FILE', '').strip(),
    os.path.join(PROJECT_ROOT, '.env'),
]
for _p in _DEFAULT_ENV_CANDIDATES:
    if _p:
        _load_env_file(_p)


def _env(key: str, default=None):
    val = os.environ.get(key)
    return default if val is None else val


def env_str(key: str, default: str = "") -> str:
    return str(_env(key, default))


def env_int(key: str, default: int) -> int:
    val = _env(key, None)
    if val is None or str(val).strip() == "":
        return int(default)
    try:
        return int(str(val).strip())
    except ValueError:
        return int(default)


def env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, None)
    if val is None:
        return bool(default)
    s = str(val).strip().lower()
    if s in ("1", "true", "yes", "y", "on", "enable", "enabled"):
        return True
    if s in ("0", "false", "no", "n", "off", "disable", "disabled"):
        return False
    return bool(default)


# ---- Database ----
DATABASE_URL = env_str('DATABASE_URL', '').strip()
DB_USER     = env_str('DB_USER', '')
DB_PASSWORD = env_str('DB_PASSWORD', '')
DB_HOST     = env_str('DB_HOST', 'localhost')
DB_PORT     = env_int('DB_PORT', 5432)
DB_NAME     = env_str('DB_NAME', '')
DB_SSL      = env_bool('DB_SSL', True)

# ---- Identity provider (OpenID Connect) ----
CLIENT_ID       = env_str('CLIENT_ID', '').strip()
CLIENT_SECRET   = env_str('CLIENT_SECRET', '').strip()
ISSUER_BASE_URL = env_str('ISSUER_BASE_URL', '').strip().rstrip('/')
IDP_LOGOUT      = env_bool('IDP_LOGOUT', True)
SECRET          = env_str('SECRET', '').strip()
SESSION_TIMEOUT = env_int('SESSION_TIMEOUT', 86400)

# ---- Network / Ports ----
# RENDER_EXTERNAL_URL is set when a TLS-terminating proxy sits in front of us.
EXTERNAL_URL = env_str('RENDER_EXTERNAL_URL', '').strip().rstrip('/')
DEFAULT_PORT = 4080
PORT = env_int('PORT', DEFAULT_PORT) if EXTERNAL_URL else DEFAULT_PORT
BIND = '0.0.0.0' if EXTERNAL_URL else 'localhost'

APP_BASE_URL = EXTERNAL_URL or f"https://localhost:{PORT}"

# Base of the lookup URL encoded into generated QR codes.
QR_PUBLIC_BASE = env_str('BASE_URL', '').strip().rstrip('/') or APP_BASE_URL

# ---- TLS (standalone mode only) ----
CERT_FILE = env_str('VATINQR_CERT_FILE', os.path.join(PROJECT_ROOT, 'server.cert'))
KEY_FILE  = env_str('VATINQR_KEY_FILE',  os.path.join(PROJECT_ROOT, 'server.key'))

# ---- Records ----
QR_LIMIT_PER_VATIN = env_int('QR_LIMIT_PER_VATIN', 3)

# ---- Logging ----
LOG_DIR   = env_str('VATINQR_LOG_DIR', '/var/log/vatinqr').strip()
LOG_LEVEL = env_str('VATINQR_LOG_LEVEL', 'INFO').strip().upper() or 'INFO'

