from unittest.mock import Mock

import pytest

from shipgate.integrations.carrier_api import CarrierApiClient
from shipgate.integrations.errors import (
    AllEndpointsFailedError, CarrierAuthError, CarrierBusinessError
)
from shipgate.integrations.fallback import FallbackAWBGenerator
from shipgate.integrations.gateway import CarrierGateway, estimate_transit_days
from shipgate.integrations.orchestrator import AWBOrchestrator
from shipgate.integrations.transport import EndpointFailoverTransport
from shipgate.integrations.types import CanonicalStatus
from tests.helpers import FakeSession, make_response

CREATED_MS = 1700000000000
HOUR_MS = 3_600_000
FALLBACK_AWB = f'FWD{CREATED_MS}000001'


def _gateway(profile, audit, carrier=None, **kwargs):
    carrier = carrier or Mock()
    orchestrator = AWBOrchestrator(profile, carrier, FallbackAWBGenerator(), audit, sleep=Mock())
    kwargs.setdefault('sleep', Mock())
    kwargs.setdefault('clock_ms', lambda: CREATED_MS + 50 * HOUR_MS)
    return CarrierGateway(profile, carrier, orchestrator, audit, **kwargs)


class TestTracking:

    def test_fallback_awb_is_synthesized(self, profile, audit):
        carrier = Mock()
        snapshot = _gateway(profile, audit, carrier).track_shipment(FALLBACK_AWB)
        assert snapshot.is_fallback
        assert snapshot.current_status is CanonicalStatus.DELIVERED
        carrier.fetch_tracking.assert_not_called()

    def test_real_awb_uses_carrier(self, profile, audit):
        carrier = Mock()
        carrier.fetch_tracking.return_value = [{'statusCode': 'OD', 'status': 'Out for delivery'}]
        snapshot = _gateway(profile, audit, carrier).track_shipment('5001234567')
        assert snapshot.current_status is CanonicalStatus.OUT_FOR_DELIVERY
        assert not snapshot.is_fallback
        assert snapshot.error is None

    def test_real_awb_without_tracking_credentials(self, unconfigured_profile, audit):
        carrier = Mock()
        snapshot = _gateway(unconfigured_profile, audit, carrier).track_shipment('5001234567')
        assert snapshot.current_status is CanonicalStatus.UNKNOWN
        assert snapshot.history == []
        assert 'credentials' in snapshot.error
        carrier.fetch_tracking.assert_not_called()

    def test_carrier_failure_reports_unknown(self, profile, audit):
        carrier = Mock()
        carrier.fetch_tracking.side_effect = AllEndpointsFailedError([])
        snapshot = _gateway(profile, audit, carrier).track_shipment('5001234567')
        assert snapshot.current_status is CanonicalStatus.UNKNOWN
        assert snapshot.error

    def test_blank_awb(self, profile, audit):
        assert _gateway(profile, audit).track_shipment('  ').error == 'AWB number is required'

    def test_bulk_tracking_batches_and_order(self, profile, audit):
        seen = []
        carrier = Mock()
        carrier.fetch_tracking.side_effect = lambda awb: seen.append(awb) or [{'statusCode': 'IT'}]
        sleep = Mock()
        gateway = _gateway(profile, audit, carrier, batch_size=10, batch_pause=1.0, sleep=sleep)
        awbs = [f'50000000{i:02d}' for i in range(23)]

        snapshots = gateway.track_shipments(awbs)

        assert [s.awb_number for s in snapshots] == awbs
        assert sorted(seen) == sorted(awbs)
        assert all(s.current_status is CanonicalStatus.IN_TRANSIT for s in snapshots)
        # three batches, two pauses
        assert sleep.call_count == 2
        sleep.assert_called_with(1.0)

    def test_bulk_tracking_mixes_fallback_and_real(self, profile, audit):
        carrier = Mock()
        carrier.fetch_tracking.side_effect = CarrierBusinessError('HTTP 500')
        snapshots = _gateway(profile, audit, carrier).track_shipments([FALLBACK_AWB, '5001234567'])
        assert snapshots[0].is_fallback
        assert snapshots[1].current_status is CanonicalStatus.UNKNOWN


class TestCancellation:

    def test_fallback_awbs_cancel_locally(self, profile, audit):
        carrier = Mock()
        result = _gateway(profile, audit, carrier).cancel_shipment([FALLBACK_AWB, FALLBACK_AWB])
        assert result.cancelled == [FALLBACK_AWB]
        assert result.failed == []
        carrier.cancel.assert_not_called()

    def test_real_awbs_go_to_carrier(self, profile, audit):
        carrier = Mock()
        carrier.cancel.return_value = (['5001'], ['5002'])
        result = _gateway(profile, audit, carrier).cancel_shipment(['5001', '5002', FALLBACK_AWB])
        carrier.cancel.assert_called_once_with(['5001', '5002'])
        assert result.cancelled == [FALLBACK_AWB, '5001']
        assert result.failed == ['5002']

    def test_carrier_error_fails_all_real(self, profile, audit):
        carrier = Mock()
        carrier.cancel.side_effect = CarrierBusinessError('HTTP 500')
        result = _gateway(profile, audit, carrier).cancel_shipment(['5001', '5002'])
        assert result.failed == ['5001', '5002']
        assert 'HTTP 500' in result.error

    def test_without_credentials(self, unconfigured_profile, audit):
        result = _gateway(unconfigured_profile, audit).cancel_shipment(['5001'])
        assert result.failed == ['5001']


class TestServiceability:

    def test_invalid_pincode(self, profile, audit):
        carrier = Mock()
        result = _gateway(profile, audit, carrier).check_serviceability('4000', '560034')
        assert not result.serviceable
        carrier.check_pincodes.assert_not_called()

    def test_carrier_answer(self, profile, audit):
        carrier = Mock()
        carrier.check_pincodes.return_value = (False, None)
        result = _gateway(profile, audit, carrier).check_serviceability('400069', '799001')
        assert result.serviceable is False
        assert not result.fallback_used

    def test_estimate_when_unconfigured(self, unconfigured_profile, audit):
        result = _gateway(unconfigured_profile, audit).check_serviceability('400069', '411001')
        assert result.serviceable and result.fallback_used
        assert result.estimated_days == 2

    def test_estimate_on_carrier_error(self, profile, audit):
        carrier = Mock()
        carrier.check_pincodes.side_effect = AllEndpointsFailedError([])
        result = _gateway(profile, audit, carrier).check_serviceability('400069', '110001')
        assert result.fallback_used
        assert result.estimated_days == 5
        assert result.error

    @pytest.mark.parametrize('origin,destination,days', [
        ('400069', '411001', 2),
        ('400069', '560034', 3),
        ('110001', '600001', 5),
    ])
    def test_estimate_transit_days(self, origin, destination, days):
        assert estimate_transit_days(origin, destination) == days


class TestLabels:

    def test_fallback_awb_label(self, profile, audit):
        result = _gateway(profile, audit).get_label(FALLBACK_AWB)
        assert result.success and result.fallback_used
        assert result.label_url == f'/api/labels/fallback-{FALLBACK_AWB}'

    def test_real_label(self, profile, audit):
        carrier = Mock()
        carrier.fetch_label.return_value = 'https://labels.test/5001.pdf'
        result = _gateway(profile, audit, carrier).get_label('5001')
        assert result.label_url == 'https://labels.test/5001.pdf'
        assert not result.fallback_used

    def test_auth_error_gives_fallback_label(self, profile, audit):
        carrier = Mock()
        carrier.fetch_label.side_effect = CarrierAuthError('HTTP 401', 401)
        result = _gateway(profile, audit, carrier).get_label('5001')
        assert result.success and result.fallback_used

    def test_business_error_fails(self, profile, audit):
        carrier = Mock()
        carrier.fetch_label.side_effect = CarrierBusinessError('HTTP 404')
        result = _gateway(profile, audit, carrier).get_label('5001')
        assert not result.success


class TestFromSettings:

    def test_wires_configuration(self, audit):
        session = FakeSession(make_response(200, {'success': True, 'data': [{'awbNumber': '5004444444'}]}))
        gateway = CarrierGateway.from_settings({
            'CARRIER_CUSTOMER_CODE': 'GL1',
            'CARRIER_API_KEY': 'key',
            'CARRIER_ENDPOINTS': 'https://only.carrier.test/api',
            'CARRIER_MAX_RETRIES': 2,
            'TRACKING_BATCH_SIZE': 5,
        }, audit, session=session, sleep=Mock())

        assert isinstance(gateway.carrier, CarrierApiClient)
        assert isinstance(gateway.carrier.transport, EndpointFailoverTransport)
        assert gateway.orchestrator.max_retries == 2
        assert gateway.batch_size == 5
        status = gateway.status()
        assert status['api_key'] == 'key***'
        assert status['endpoints'] == ['https://only.carrier.test/api']
