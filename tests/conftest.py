import os
import sys
import pytest
import requests

# Ensure project root on PYTHONPATH
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from shipgate import create_app
from shipgate.integrations.audit import InMemoryAuditLogger
from shipgate.integrations.types import (
    Address, CarrierAccountProfile, Direction, ShipmentRequest
)
from tests.helpers import ENDPOINTS


@pytest.fixture()
def profile():
    return CarrierAccountProfile(
        customer_code='GL20001',
        api_key='abcdef1234567890',
        endpoints=ENDPOINTS,
        tracking_access_token='track-token',
    )


@pytest.fixture()
def reverse_only_profile():
    return CarrierAccountProfile(
        customer_code='GL10074',
        api_key='abcdef1234567890',
        is_reverse_only_account=True,
        endpoints=ENDPOINTS,
    )


@pytest.fixture()
def unconfigured_profile():
    return CarrierAccountProfile(customer_code=None, api_key=None, endpoints=ENDPOINTS)


@pytest.fixture()
def recipient():
    return Address(
        name='Asha Verma',
        phone='+91 98200 11223',
        street='12 MG Road',
        area='Koramangala',
        city='Bangalore',
        state='Karnataka',
        pincode='560034',
    )


@pytest.fixture()
def sender():
    return Address(
        name='Service Centre 4',
        phone='022-2345-6789',
        street='Plot 7 MIDC',
        area='Thane West',
        city='Thane',
        state='Maharashtra',
        pincode='400601',
    )


@pytest.fixture()
def shipment(recipient):
    return ShipmentRequest(
        recipient=recipient,
        weight_kg=1.5,
        declared_value=2500,
        piece_count=1,
        shipment_id='SHP-1001',
    )


@pytest.fixture()
def reverse_shipment(recipient, sender):
    return ShipmentRequest(
        recipient=recipient,
        sender=sender,
        weight_kg=0.8,
        declared_value=1200,
        piece_count=1,
        direction=Direction.REVERSE,
        shipment_id='RET-2001',
    )


@pytest.fixture()
def audit():
    return InMemoryAuditLogger()


@pytest.fixture(scope='session')
def app():
    app = create_app('testing')
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def connection_error():
    return requests.exceptions.ConnectionError('Connection refused')
