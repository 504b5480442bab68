"""
API routes for ShipGate
"""
import logging
from datetime import datetime

from flask import jsonify, request

from shipgate import get_gateway
from shipgate.api import api_bp
from shipgate.integrations.consignment import validate_shipment_request
from shipgate.integrations.errors import ShipmentValidationError
from shipgate.integrations.fallback import is_fallback_awb
from shipgate.integrations.types import ShipmentRequest

logger = logging.getLogger(__name__)

MAX_BULK_AWBS = 100


def _awb_list(data):
    """AWB list from a JSON body, or None when it is not a list of strings."""
    if not isinstance(data, dict):
        return None
    awbs = data.get('awbNumbers', data.get('awb_numbers'))
    if not isinstance(awbs, list) or not all(isinstance(a, str) for a in awbs):
        return None
    return awbs


@api_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'fallback_mode': get_gateway().profile.fallback_mode,
        'timestamp': datetime.utcnow().isoformat()
    })


@api_bp.route('/shipments', methods=['POST'])
def create_shipment():
    """Create a shipment and obtain an AWB."""
    try:
        shipment = ShipmentRequest.from_dict(request.get_json(silent=True))
        validate_shipment_request(shipment)
    except ShipmentValidationError as e:
        return jsonify({'error': 'Invalid shipment request', 'details': e.errors}), 422

    try:
        result = get_gateway().create_shipment(shipment)
        if not result.success:
            return jsonify(result.to_dict()), 502
        return jsonify(result.to_dict()), 201
    except Exception as e:
        logger.error(f"Error creating shipment: {e}")
        return jsonify({'error': 'Failed to create shipment'}), 500


@api_bp.route('/shipments/<awb>/tracking', methods=['GET'])
def track_shipment(awb):
    """Current status and history for one AWB."""
    try:
        snapshot = get_gateway().track_shipment(awb)
        return jsonify(snapshot.to_dict())
    except Exception as e:
        logger.error(f"Error tracking shipment {awb}: {e}")
        return jsonify({'error': 'Failed to track shipment'}), 500


@api_bp.route('/shipments/tracking', methods=['POST'])
def track_shipments():
    """Bulk tracking."""
    awbs = _awb_list(request.get_json(silent=True))
    if not awbs:
        return jsonify({'error': 'awbNumbers must be a non-empty list'}), 400
    if len(awbs) > MAX_BULK_AWBS:
        return jsonify({'error': f'At most {MAX_BULK_AWBS} AWBs per request'}), 400

    try:
        snapshots = get_gateway().track_shipments(awbs)
        return jsonify({
            'results': [s.to_dict() for s in snapshots],
            'count': len(snapshots)
        })
    except Exception as e:
        logger.error(f"Error tracking shipments: {e}")
        return jsonify({'error': 'Failed to track shipments'}), 500


@api_bp.route('/shipments/cancel', methods=['POST'])
def cancel_shipments():
    awbs = _awb_list(request.get_json(silent=True))
    if not awbs:
        return jsonify({'error': 'awbNumbers must be a non-empty list'}), 400

    try:
        result = get_gateway().cancel_shipment(awbs)
        return jsonify(result.to_dict())
    except Exception as e:
        logger.error(f"Error cancelling shipments: {e}")
        return jsonify({'error': 'Failed to cancel shipments'}), 500


@api_bp.route('/shipments/<awb>/label', methods=['GET'])
def shipment_label(awb):
    try:
        result = get_gateway().get_label(awb)
        return jsonify(result.to_dict()), (200 if result.success else 502)
    except Exception as e:
        logger.error(f"Error fetching label for {awb}: {e}")
        return jsonify({'error': 'Failed to fetch label'}), 500


@api_bp.route('/serviceability', methods=['GET'])
def serviceability():
    """Check whether the carrier serves an origin/destination pincode pair."""
    origin = request.args.get('origin', '')
    destination = request.args.get('destination', '')
    if not origin or not destination:
        return jsonify({'error': 'origin and destination pincodes are required'}), 400

    try:
        result = get_gateway().check_serviceability(origin, destination)
        return jsonify(result.to_dict())
    except Exception as e:
        logger.error(f"Error checking serviceability {origin}->{destination}: {e}")
        return jsonify({'error': 'Failed to check serviceability'}), 500


@api_bp.route('/labels/fallback-<awb>', methods=['GET'])
def fallback_label(awb):
    """Placeholder label served when the carrier cannot produce one."""
    return jsonify({
        'awb_number': awb,
        'label_code': 'SHIP_LABEL_4X6',
        'placeholder': True,
        'is_fallback': is_fallback_awb(awb),
        'tracking_url': f'/api/shipments/{awb}/tracking',
        'message': 'Carrier label unavailable; print the AWB number on the package',
    })
