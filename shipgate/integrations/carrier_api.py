"""
Carrier REST API client.

Knows the request and response shapes of the carrier's endpoints and turns
HTTP outcomes into CarrierError subclasses. Endpoint selection is left to
the failover transport.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from shipgate.integrations.errors import (
    CarrierAuthError, CarrierBusinessError, CarrierResponseError
)
from shipgate.integrations.transport import EndpointFailoverTransport
from shipgate.integrations.types import CarrierAccountProfile, ConsignmentPayload

logger = logging.getLogger(__name__)

# Keys the carrier has used for the AWB in create responses
AWB_KEYS = ('awbNumber', 'awb_number', 'referenceNumber', 'reference_number', 'consignment_number')


@dataclass(frozen=True)
class CarrierTimeouts:
    create: float = 45
    tracking: float = 30
    label: float = 30
    cancel: float = 30
    serviceability: float = 15


def _check_response(response: requests.Response, action: str) -> Any:
    """Map HTTP status to errors and return the decoded JSON body."""
    status = response.status_code
    if status in (401, 403):
        raise CarrierAuthError(f"Carrier rejected credentials for {action} (HTTP {status})", status)
    if status >= 400:
        raise CarrierBusinessError(
            f"Carrier {action} failed with HTTP {status}: {response.text[:200]}", status
        )
    try:
        return response.json()
    except ValueError:
        raise CarrierResponseError(f"Carrier {action} returned malformed JSON", status)


def extract_awb(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    data = body.get('data')
    record = data[0] if isinstance(data, list) and data else data
    if not isinstance(record, dict):
        return None
    for key in AWB_KEYS:
        if record.get(key):
            return str(record[key])
    return None


class CarrierApiClient:
    """Outbound calls to the carrier for one account profile."""

    def __init__(self, profile: CarrierAccountProfile,
                 transport: Optional[EndpointFailoverTransport] = None,
                 timeouts: Optional[CarrierTimeouts] = None):
        self.profile = profile
        self.transport = transport or EndpointFailoverTransport()
        self.timeouts = timeouts or CarrierTimeouts()

    @property
    def endpoints(self) -> Sequence[str]:
        return self.profile.endpoints

    def _headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'api-key': self.profile.api_key or '',
        }

    def create_consignment(self, payload: ConsignmentPayload) -> Tuple[str, Dict[str, Any]]:
        """Book a consignment; returns (awb_number, raw_body)."""
        body = payload.to_wire(self.profile)
        response = self.transport.send(
            'POST', '/consignment/create', self.endpoints,
            json=body, headers=self._headers(), timeout=self.timeouts.create,
        )
        if response.status_code == 400:
            self._log_rejection(payload, body, response)
        data = _check_response(response, 'consignment create')
        if not isinstance(data, dict) or data.get('success') is not True:
            self._log_rejection(payload, body, response)
            message = data.get('message') if isinstance(data, dict) else None
            raise CarrierBusinessError(
                f"Carrier reported failure: {message or 'success flag not set'}", response.status_code
            )
        awb = extract_awb(data)
        if not awb:
            raise CarrierResponseError('Carrier response did not include an AWB number', response.status_code)
        return awb, data

    @staticmethod
    def _log_rejection(payload: ConsignmentPayload, body: Dict[str, Any], response: requests.Response):
        # The wire body carries the customer code but never the api-key header
        logger.error(
            f"Carrier rejected consignment {payload.customer_reference_number} "
            f"(HTTP {response.status_code}). Request: {json.dumps(body, default=str)} "
            f"Response: {response.text[:1000]}"
        )

    def fetch_tracking(self, awb: str) -> List[Dict[str, Any]]:
        """Raw tracking events for one AWB."""
        headers = self._headers()
        body = {'trkType': 'cnno', 'strcnno': awb, 'addtnlDtl': 'Y'}
        if self.profile.tracking_access_token:
            headers['X-Access-Token'] = self.profile.tracking_access_token
        else:
            body['username'] = self.profile.tracking_username
            body['password'] = self.profile.tracking_password
        response = self.transport.send(
            'POST', '/tracking/details', self.endpoints,
            json=body, headers=headers, timeout=self.timeouts.tracking,
        )
        data = _check_response(response, 'tracking')
        if isinstance(data, list):
            data = data[0] if data else {}
        if not isinstance(data, dict):
            raise CarrierResponseError('Unexpected tracking response shape')
        events = data.get('trackingDetails')
        if events is None and isinstance(data.get('data'), dict):
            events = data['data'].get('trackingDetails')
        return events if isinstance(events, list) else []

    def cancel(self, awbs: List[str]) -> Tuple[List[str], List[str]]:
        """Cancel AWBs; returns (cancelled, failed)."""
        response = self.transport.send(
            'POST', '/consignment/cancel', self.endpoints,
            json={'AWBNo': list(awbs), 'customerCode': self.profile.customer_code},
            headers=self._headers(), timeout=self.timeouts.cancel,
        )
        data = _check_response(response, 'cancel')
        if not isinstance(data, dict):
            raise CarrierResponseError('Unexpected cancel response shape')
        if 'cancelled' in data or 'failed' in data:
            cancelled = [str(a) for a in data.get('cancelled') or []]
            failed = [str(a) for a in data.get('failed') or []]
            # AWBs the carrier did not mention were not cancelled
            failed.extend(a for a in awbs if a not in cancelled and a not in failed)
            return cancelled, failed
        if data.get('success') is True:
            return list(awbs), []
        return [], list(awbs)

    def fetch_label(self, awb: str) -> str:
        """Label location for an AWB."""
        response = self.transport.send(
            'GET', '/consignment/label', self.endpoints,
            params={'reference_number': awb, 'label_code': 'SHIP_LABEL_4X6', 'label_format': 'pdf'},
            headers=self._headers(), timeout=self.timeouts.label,
        )
        content_type = response.headers.get('Content-Type', '')
        if response.status_code < 400 and 'pdf' in content_type:
            return response.url
        data = _check_response(response, 'label')
        record = data.get('data') if isinstance(data, dict) and isinstance(data.get('data'), dict) else data
        if isinstance(record, dict):
            for key in ('label_url', 'labelUrl', 'url'):
                if record.get(key):
                    return str(record[key])
        raise CarrierResponseError('Carrier label response did not include a label')

    def check_pincodes(self, origin: str, destination: str) -> Tuple[bool, Optional[int]]:
        """Returns (serviceable, estimated_days)."""
        response = self.transport.send(
            'POST', '/pincode/serviceability', self.endpoints,
            json={'orgPincode': origin, 'desPincode': destination},
            headers=self._headers(), timeout=self.timeouts.serviceability,
        )
        data = _check_response(response, 'serviceability')
        if isinstance(data, dict) and isinstance(data.get('data'), dict):
            data = data['data']
        if not isinstance(data, dict):
            raise CarrierResponseError('Unexpected serviceability response shape')
        flag = data.get('serviceable')
        serviceable = flag is True or str(flag).upper() == 'Y'
        days = data.get('estimated_days', data.get('estimatedDays'))
        try:
            days = int(days) if days is not None else None
        except (TypeError, ValueError):
            days = None
        return serviceable, days
