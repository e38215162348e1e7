import json
import os
import sys
import threading
import time
from typing import Any, Optional

LEVELS = {'DEBUG': 10, 'INFO': 20, 'WARNING': 30, 'ERROR': 40, 'CRITICAL': 50}


def _writable_dir(path: str) -> bool:
    try:
        os.makedirs(path, exist_ok=True)
    except OSError:
        return False
    return os.access(path, os.W_OK)


def _timestamp() -> str:
    return time.strftime('%Y-%m-%dT%H:%M:%S%z', time.localtime())


class LogFile:
    """Append-only text file, moved aside to <name>.<YYYYMM>.bak when the month changes."""

    def __init__(self, path: str):
        self.path = path

    def _rotate(self) -> None:
        try:
            written = time.strftime('%Y%m', time.localtime(os.stat(self.path).st_mtime))
        except FileNotFoundError:
            return
        if written == time.strftime('%Y%m'):
            return
        try:
            os.replace(self.path, f"{self.path}.{written}.bak")
        except FileNotFoundError:
            # another worker rotated it first
            pass

    def append(self, line: str) -> None:
        self._rotate()
        with open(self.path, 'a', encoding='utf-8') as f:
            f.write(line.rstrip('\n') + '\n')


class StructuredLogger:
    """Two sinks under one directory: audit.log (JSON lines) and <component>.log (key=value text).

    Text lines at or above `echo_level` also go to stderr for the process manager's journal.
    """

    def __init__(self, app: str, component: str, base_dir: str,
                 fallback_dir: Optional[str] = None, echo_level: str = 'INFO'):
        self.app = app
        self.component = component
        if not _writable_dir(base_dir) and fallback_dir:
            _writable_dir(fallback_dir)
            base_dir = fallback_dir
        self.base_dir = base_dir
        self._audit = LogFile(os.path.join(base_dir, 'audit.log'))
        self._text = LogFile(os.path.join(base_dir, f"{component}.log"))
        self._echo_threshold = LEVELS.get(echo_level.upper(), LEVELS['INFO'])
        self._lock = threading.Lock()

    def audit(self, event: str, *, actor: str, result: str = 'ok', **fields: Any) -> None:
        payload = {
            'ts': _timestamp(),
            'app': self.app,
            'component': self.component,
            'event': event,
            'actor': actor,
            'result': result,
        }
        payload.update((k, v) for k, v in fields.items() if v is not None)
        line = json.dumps(payload, ensure_ascii=False, default=str)
        with self._lock:
            self._audit.append(line)

    def log(self, level: str, message: str, **fields: Any) -> None:
        level = level.upper()
        parts = [_timestamp(), level, f"component={self.app}.{self.component}"]
        parts += [f"{k}={v}" for k, v in fields.items()]
        parts.append(message)
        line = ' '.join(parts)
        with self._lock:
            self._text.append(line)
            if LEVELS.get(level, LEVELS['INFO']) >= self._echo_threshold:
                sys.stderr.write(line + '\n')
