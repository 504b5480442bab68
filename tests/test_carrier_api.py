import dataclasses
import logging

import pytest

from shipgate.integrations.carrier_api import CarrierApiClient, CarrierTimeouts, extract_awb
from shipgate.integrations.consignment import ConsignmentBuilder
from shipgate.integrations.errors import (
    CarrierAuthError, CarrierBusinessError, CarrierResponseError
)
from shipgate.integrations.transport import EndpointFailoverTransport
from tests.helpers import FakeSession, awb_created, make_response


def _client(profile, *outcomes):
    session = FakeSession(*outcomes)
    return CarrierApiClient(profile, EndpointFailoverTransport(session=session)), session


class TestCreateConsignment:

    def test_success_returns_awb(self, profile, shipment):
        client, session = _client(profile, awb_created('5001234567'))
        payload = ConsignmentBuilder().build(shipment, profile)

        awb, body = client.create_consignment(payload)

        assert awb == '5001234567'
        assert body['success'] is True
        call = session.calls[0]
        assert call['url'].endswith('/consignment/create')
        assert call['headers']['api-key'] == profile.api_key
        assert call['timeout'] == CarrierTimeouts().create
        assert call['json']['consignments'][0]['customer_reference_number'] == 'SG-SHP-1001'

    @pytest.mark.parametrize('status', [401, 403])
    def test_auth_rejection(self, profile, shipment, status):
        client, _ = _client(profile, make_response(status, {'message': 'bad key'}))
        with pytest.raises(CarrierAuthError) as exc_info:
            client.create_consignment(ConsignmentBuilder().build(shipment, profile))
        assert exc_info.value.status_code == status
        assert not exc_info.value.retryable

    def test_server_error(self, profile, shipment):
        client, _ = _client(profile, make_response(502, text='bad gateway'))
        with pytest.raises(CarrierBusinessError, match='HTTP 502'):
            client.create_consignment(ConsignmentBuilder().build(shipment, profile))

    def test_success_flag_false(self, profile, shipment):
        client, _ = _client(profile, make_response(200, {'success': False, 'message': 'Pincode not serviceable'}))
        with pytest.raises(CarrierBusinessError, match='Pincode not serviceable'):
            client.create_consignment(ConsignmentBuilder().build(shipment, profile))

    @pytest.mark.parametrize('response', [
        make_response(400, {'message': 'Invalid destination'}, text='{"message": "Invalid destination"}'),
        make_response(200, {'success': False, 'message': 'Invalid destination'},
                      text='{"success": false, "message": "Invalid destination"}'),
    ])
    def test_rejection_logged_with_payload(self, profile, shipment, response, caplog):
        client, _ = _client(profile, response)
        with caplog.at_level(logging.ERROR, logger='shipgate.integrations.carrier_api'):
            with pytest.raises(CarrierBusinessError):
                client.create_consignment(ConsignmentBuilder().build(shipment, profile))

        message = caplog.records[-1].getMessage()
        assert 'SG-SHP-1001' in message
        assert profile.customer_code in message
        assert shipment.recipient.pincode in message
        assert 'Invalid destination' in message
        assert profile.api_key not in message

    def test_malformed_json(self, profile, shipment):
        client, _ = _client(profile, make_response(200, None, text='<html>'))
        with pytest.raises(CarrierResponseError):
            client.create_consignment(ConsignmentBuilder().build(shipment, profile))

    def test_missing_awb(self, profile, shipment):
        client, _ = _client(profile, make_response(200, {'success': True, 'data': [{}]}))
        with pytest.raises(CarrierResponseError, match='AWB'):
            client.create_consignment(ConsignmentBuilder().build(shipment, profile))


class TestExtractAwb:

    @pytest.mark.parametrize('key', ['awbNumber', 'awb_number', 'referenceNumber', 'reference_number', 'consignment_number'])
    def test_known_keys(self, key):
        assert extract_awb({'data': [{key: 'A1'}]}) == 'A1'

    def test_data_as_object(self):
        assert extract_awb({'data': {'awb_number': 99}}) == '99'

    def test_nothing_usable(self):
        assert extract_awb({'data': []}) is None
        assert extract_awb(['x']) is None


class TestOtherCalls:

    def test_tracking_uses_access_token(self, profile):
        events = [{'statusCode': 'BK', 'status': 'Booked'}]
        client, session = _client(profile, make_response(200, [{'trackingDetails': events}]))

        assert client.fetch_tracking('5001234567') == events
        call = session.calls[0]
        assert call['headers']['X-Access-Token'] == 'track-token'
        assert call['json'] == {'trkType': 'cnno', 'strcnno': '5001234567', 'addtnlDtl': 'Y'}

    def test_tracking_with_username_password(self, profile):
        user_profile = dataclasses.replace(
            profile, tracking_access_token=None, tracking_username='u', tracking_password='p'
        )
        client, session = _client(user_profile, make_response(200, {'trackingDetails': []}))
        assert client.fetch_tracking('1') == []
        body = session.calls[0]['json']
        assert body['username'] == 'u'
        assert 'X-Access-Token' not in session.calls[0]['headers']

    def test_cancel_partial(self, profile):
        client, session = _client(profile, make_response(200, {'cancelled': ['A1'], 'failed': []}))
        cancelled, failed = client.cancel(['A1', 'A2'])
        assert cancelled == ['A1']
        assert failed == ['A2']
        assert session.calls[0]['json'] == {'AWBNo': ['A1', 'A2'], 'customerCode': 'GL20001'}

    def test_label_pdf(self, profile):
        pdf = make_response(200, None, headers={'Content-Type': 'application/pdf'},
                            url='https://primary.carrier.test/api/consignment/label?reference_number=A1')
        client, session = _client(profile, pdf)
        assert client.fetch_label('A1') == pdf.url
        assert session.calls[0]['params']['label_code'] == 'SHIP_LABEL_4X6'

    def test_label_json(self, profile):
        client, _ = _client(profile, make_response(200, {'data': {'label_url': 'https://labels.test/A1.pdf'}}))
        assert client.fetch_label('A1') == 'https://labels.test/A1.pdf'

    def test_pincodes(self, profile):
        client, session = _client(profile, make_response(200, {'serviceable': 'Y', 'estimated_days': '3'}))
        assert client.check_pincodes('400069', '560034') == (True, 3)
        assert session.calls[0]['json'] == {'orgPincode': '400069', 'desPincode': '560034'}
        assert session.calls[0]['timeout'] == 15

    def test_pincodes_not_serviceable(self, profile):
        client, _ = _client(profile, make_response(200, {'data': {'serviceable': 'N'}}))
        assert client.check_pincodes('400069', '799001') == (False, None)
