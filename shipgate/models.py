"""
ShipGate - Database Models
"""
from datetime import datetime

from shipgate.extensions import db


class CarrierAttemptLog(db.Model):
    """Append-only record of carrier AWB attempts and outcomes"""
    __tablename__ = 'carrier_attempt_logs'

    id = db.Column(db.Integer, primary_key=True)
    shipment_ref = db.Column(db.String(100), nullable=False, index=True)
    attempt = db.Column(db.Integer, nullable=False, default=0)  # 0 = terminal outcome
    success = db.Column(db.Boolean, nullable=False)
    awb_number = db.Column(db.String(50), index=True)
    is_fallback = db.Column(db.Boolean, nullable=False, default=False)
    direction = db.Column(db.String(20))  # forward, reverse
    error = db.Column(db.Text)
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'shipment_ref': self.shipment_ref,
            'attempt': self.attempt,
            'success': self.success,
            'awb_number': self.awb_number,
            'is_fallback': self.is_fallback,
            'direction': self.direction,
            'error': self.error,
            'timestamp_utc': self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f'<CarrierAttemptLog {self.shipment_ref}#{self.attempt} success={self.success} at {self.timestamp}>'
