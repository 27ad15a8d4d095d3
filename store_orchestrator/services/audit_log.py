"""
Audit log — append-only record of every store lifecycle action.

Each entry is written as one JSON object per line to AUDIT_LOG_PATH and kept
in an in-memory ring buffer for the /api/audit endpoint. A failed file write
is logged and never propagated to the request that caused it. The file is
opened once and flushed after every entry.
"""

import json
import logging
import os
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Optional

from store_orchestrator.models import AuditAction

logger = logging.getLogger("audit")


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class AuditLog:
    def __init__(self, path: Optional[str], buffer_size: int = 200):
        self.path = path
        self._lock = threading.Lock()
        self._recent: deque[dict] = deque(maxlen=buffer_size)
        self._file = None
        if path:
            directory = os.path.dirname(path)
            try:
                if directory:
                    os.makedirs(directory, exist_ok=True)
            except OSError as e:
                logger.warning(f"Cannot create audit directory {directory} (non-fatal): {e}")

    def record(self, action: AuditAction, **details) -> dict:
        """Append an entry. Raises ValueError for actions outside the taxonomy."""
        action = AuditAction(action)
        entry = {
            "timestamp": _now(),
            "action": action.value,
            "details": details,
        }
        line = json.dumps(entry, default=str) + "\n"
        # Buffer and file are updated under one lock so both see the same order
        with self._lock:
            self._recent.append(entry)
            self._write(line)
        logger.info(f"AUDIT: {action.value} {details}")
        return entry

    def _write(self, line: str):
        if not self.path:
            return
        try:
            if self._file is None:
                self._file = open(self.path, "a", encoding="utf-8")
            self._file.write(line)
            self._file.flush()
        except OSError as e:
            logger.warning(f"Audit write to {self.path} failed (non-fatal): {e}")
            self._close_file()

    def _close_file(self):
        if self._file is None:
            return
        try:
            self._file.close()
        except OSError as e:
            logger.warning(f"Closing audit log {self.path} failed: {e}")
        self._file = None

    def close(self):
        """Release the file handle. A later record() reopens it."""
        with self._lock:
            self._close_file()

    def recent(self, limit: Optional[int] = None) -> list[dict]:
        entries = list(self._recent)
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return entries
