# Overview: Service-layer operations for maintenance; encapsulates business logic and database work.

from __future__ import annotations

import logging
import threading
from datetime import timedelta

from ..extensions import db
from ..models import AuditLog
from . import lifecycle_service
from permitflow.time_utils import utcnow


logger = logging.getLogger(__name__)


def cleanup_audit_logs(*, retention_days: int = 90) -> int:
    """Delete audit log entries older than retention_days."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(AuditLog).filter(
        AuditLog.occurred_at < cutoff
    ).delete()
    db.session.commit()
    return deleted


class AutoCloseScheduler:
    """
    Periodically closes permits whose effective end has passed.

    Runs lifecycle_service.auto_close_expired() inside an app context on a
    daemon thread. A failed run is logged and retried on the next tick.
    """

    def __init__(self, app, interval_seconds: int):
        self.app = app
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_once(self) -> int:
        with self.app.app_context():
            try:
                return len(lifecycle_service.auto_close_expired())
            except Exception:
                db.session.rollback()
                logger.exception("Auto-close run failed")
                return 0

    def _loop(self):
        logger.info("Auto-close scheduler started (every %ss)", self.interval_seconds)
        while not self._stop.wait(self.interval_seconds):
            self.run_once()
        logger.info("Auto-close scheduler stopped")

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="permit-auto-close", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


def start_auto_close_scheduler(app) -> AutoCloseScheduler:
    scheduler = AutoCloseScheduler(app, app.config.get("AUTO_CLOSE_INTERVAL_SECONDS", 300))
    scheduler.start()
    return scheduler
