"""
Request validation and consignment payload construction.

Nothing in here touches the network.
"""
import math
import re
import time
from typing import Callable, List

from shipgate.integrations.errors import ShipmentValidationError
from shipgate.integrations.types import (
    Address, CarrierAccountProfile, ConsignmentPayload, Direction, ShipmentRequest
)

PINCODE_RE = re.compile(r'[0-9]{6}')

MIN_WEIGHT_KG = 0.1
MIN_DECLARED_VALUE = 100

DEFAULT_WAREHOUSE = Address(
    name='SpareFlow Logistics Pvt Ltd',
    phone='9876543200',
    street='Tech Park',
    area='Andheri East',
    city='Mumbai',
    state='Maharashtra',
    pincode='400069',
)

DEFAULT_RETURNS_ADDRESS = Address(
    name='Returns Department',
    phone='9876543200',
    street='Tech Park',
    area='Andheri East',
    city='Mumbai',
    state='Maharashtra',
    pincode='400069',
    email='returns@spareflow.com',
)


def _address_errors(address: Address, role: str) -> List[str]:
    errors = []
    if not address.name:
        errors.append(f'{role} name is required')
    if len(address.phone_digits) < 10:
        errors.append(f'{role} phone must contain at least 10 digits')
    if not PINCODE_RE.fullmatch(address.pincode or ''):
        errors.append(f'{role} pincode must be exactly 6 digits')
    if not address.city:
        errors.append(f'{role} city is required')
    if not address.state:
        errors.append(f'{role} state is required')
    if not address.street:
        errors.append(f'{role} street address is required')
    return errors


def _is_positive(value) -> bool:
    # NaN and infinity compare false against 0, so check finiteness first
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def validate_shipment_request(request: ShipmentRequest) -> None:
    """Raise ShipmentValidationError listing every problem found."""
    errors = _address_errors(request.recipient, 'Recipient')
    if request.sender is not None:
        errors.extend(_address_errors(request.sender, 'Sender'))
    if not _is_positive(request.weight_kg):
        errors.append('Weight must be greater than 0')
    if not _is_positive(request.declared_value):
        errors.append('Declared value must be greater than 0')
    if not _is_positive(request.piece_count):
        errors.append('Piece count must be greater than 0')
    if errors:
        raise ShipmentValidationError(errors)


class ConsignmentBuilder:
    """Assigns address roles and renders the carrier consignment."""

    def __init__(self, warehouse: Address = DEFAULT_WAREHOUSE,
                 returns: Address = DEFAULT_RETURNS_ADDRESS,
                 reference_prefix: str = 'SG',
                 clock: Callable[[], float] = time.time):
        self.warehouse = warehouse
        self.returns = returns
        self.reference_prefix = reference_prefix
        self.clock = clock

    def reference_for(self, request: ShipmentRequest) -> str:
        if request.shipment_id:
            return f'{self.reference_prefix}-{request.shipment_id}'
        return f'{self.reference_prefix}-{int(self.clock() * 1000)}'

    def build(self, request: ShipmentRequest, profile: CarrierAccountProfile) -> ConsignmentPayload:
        sender = request.sender or self.warehouse
        reverse = request.direction is Direction.REVERSE

        # A reverse-only account books everything as reverse; the roles still
        # follow the caller's intent.
        if reverse:
            origin, destination = request.recipient, sender
        else:
            origin, destination = sender, request.recipient

        if profile.is_reverse_only_account or reverse:
            consignment_type = 'reverse'
        else:
            consignment_type = 'forward'

        return ConsignmentPayload(
            consignment_type=consignment_type,
            origin=origin,
            destination=destination,
            return_to=self.returns,
            weight_kg=max(float(request.weight_kg), MIN_WEIGHT_KG),
            declared_value=max(float(request.declared_value), MIN_DECLARED_VALUE),
            pieces=int(request.piece_count),
            customer_reference_number=self.reference_for(request),
            description='Spare Parts Return' if reverse else 'Spare Parts and Electronic Components',
        )
