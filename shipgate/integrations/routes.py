"""
Carrier integration diagnostics routes
"""
import logging
from datetime import datetime

from flask import Blueprint, jsonify, request

from shipgate import get_gateway

logger = logging.getLogger(__name__)

integrations_bp = Blueprint('integrations', __name__)


@integrations_bp.route('/carrier/status')
def carrier_status():
    """Resolved carrier configuration (secrets masked)."""
    try:
        return jsonify({
            'carrier': get_gateway().status(),
            'timestamp': datetime.utcnow().isoformat()
        })
    except Exception as e:
        logger.error(f"Error getting carrier status: {e}")
        return jsonify({'error': 'Failed to get carrier status'}), 500


@integrations_bp.route('/carrier/attempts')
def carrier_attempts():
    """Recent AWB attempt log entries, newest first."""
    shipment_ref = request.args.get('shipment_ref')
    limit = request.args.get('limit', 50, type=int)
    limit = max(1, min(limit, 500))
    try:
        entries = get_gateway().audit.entries(shipment_ref=shipment_ref, limit=limit)
        return jsonify({'attempts': entries, 'count': len(entries)})
    except Exception as e:
        logger.error(f"Error reading carrier attempt log: {e}")
        return jsonify({'error': 'Failed to read attempt log'}), 500
