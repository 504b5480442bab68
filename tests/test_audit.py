from datetime import datetime, timezone

import pytest

from shipgate import create_app
from shipgate.extensions import db
from shipgate.integrations.audit import DatabaseAuditLogger, InMemoryAuditLogger
from shipgate.integrations.types import AttemptLogEntry
from shipgate.models import CarrierAttemptLog


def _entry(ref='SHP-1', attempt=1, success=False, awb=None, fallback=False, error='HTTP 500'):
    return AttemptLogEntry(
        shipment_ref=ref,
        success=success,
        awb_number=awb,
        is_fallback=fallback,
        error=error,
        timestamp_utc=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        attempt=attempt,
        direction='forward',
    )


@pytest.fixture
def db_app():
    """Fresh app with its own in-memory database."""
    app = create_app('testing')
    yield app
    with app.app_context():
        db.drop_all()


class TestInMemoryAuditLogger:

    def test_append_only(self, audit):
        audit.record(_entry(attempt=1))
        audit.record(_entry(attempt=1))
        assert len(audit.records) == 2

    def test_entries_newest_first_and_filtered(self, audit):
        audit.record(_entry(ref='A', attempt=1))
        audit.record(_entry(ref='B', attempt=1))
        audit.record(_entry(ref='A', attempt=2))
        entries = audit.entries(shipment_ref='A')
        assert [e['attempt'] for e in entries] == [2, 1]
        assert audit.entries(limit=1)[0]['shipment_ref'] == 'A'


class TestDatabaseAuditLogger:

    def test_record_writes_row(self, db_app):
        logger = DatabaseAuditLogger(db_app)
        logger.record(_entry(ref='SHP-9', attempt=0, success=True, awb='FWD1', fallback=True, error=None))

        with db_app.app_context():
            rows = CarrierAttemptLog.query.filter_by(shipment_ref='SHP-9').all()
            assert len(rows) == 1
            assert rows[0].is_fallback is True
            assert rows[0].awb_number == 'FWD1'

        entries = logger.entries(shipment_ref='SHP-9')
        assert entries[0]['success'] is True

    def test_storage_failure_is_swallowed(self, db_app, caplog):
        logger = DatabaseAuditLogger(db_app)
        with db_app.app_context():
            db.drop_all()

        logger.record(_entry(ref='SHP-X'))

        assert 'Failed to store audit entry' in caplog.text
