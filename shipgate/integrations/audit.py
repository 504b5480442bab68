"""
Attempt audit trail.

Recording is best-effort: a storage failure is logged and never reaches the
caller.
"""
import logging
import threading
from typing import Any, Dict, List, Optional

from shipgate.integrations.types import AttemptLogEntry

logger = logging.getLogger(__name__)


class AuditLogger:
    """Base audit logger; writes to the application log only."""

    def record(self, entry: AttemptLogEntry) -> None:
        level = logging.INFO if entry.success else logging.WARNING
        logger.log(
            level,
            "AWB attempt shipment=%s attempt=%s success=%s awb=%s fallback=%s error=%s",
            entry.shipment_ref, entry.attempt, entry.success,
            entry.awb_number, entry.is_fallback, entry.error,
        )
        try:
            self._store(entry)
        except Exception as e:
            logger.error(f"Failed to store audit entry for {entry.shipment_ref}: {e}")

    def _store(self, entry: AttemptLogEntry) -> None:
        pass

    def entries(self, shipment_ref: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        return []


class InMemoryAuditLogger(AuditLogger):
    """Keeps entries in process memory (tests, no-database deployments)."""

    def __init__(self):
        self._entries: List[AttemptLogEntry] = []
        self._lock = threading.Lock()

    def _store(self, entry: AttemptLogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    @property
    def records(self) -> List[AttemptLogEntry]:
        with self._lock:
            return list(self._entries)

    def entries(self, shipment_ref: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        rows = [e for e in self.records if shipment_ref is None or e.shipment_ref == shipment_ref]
        return [e.to_dict() for e in reversed(rows)][:limit]


class DatabaseAuditLogger(AuditLogger):
    """Appends CarrierAttemptLog rows through Flask-SQLAlchemy."""

    def __init__(self, app):
        self.app = app

    def _store(self, entry: AttemptLogEntry) -> None:
        from shipgate.extensions import db
        from shipgate.models import CarrierAttemptLog

        with self.app.app_context():
            try:
                db.session.add(CarrierAttemptLog(
                    shipment_ref=entry.shipment_ref,
                    attempt=entry.attempt,
                    success=entry.success,
                    awb_number=entry.awb_number,
                    is_fallback=entry.is_fallback,
                    direction=entry.direction,
                    error=entry.error,
                    timestamp=entry.timestamp_utc.replace(tzinfo=None),
                ))
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise

    def entries(self, shipment_ref: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        from shipgate.models import CarrierAttemptLog

        with self.app.app_context():
            query = CarrierAttemptLog.query
            if shipment_ref:
                query = query.filter_by(shipment_ref=shipment_ref)
            rows = query.order_by(CarrierAttemptLog.id.desc()).limit(limit).all()
            return [row.to_dict() for row in rows]
