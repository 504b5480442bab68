"""
Carrier integration package.
"""
from shipgate.integrations.gateway import CarrierGateway
from shipgate.integrations.types import (
    AWBResult, Address, CanonicalStatus, CarrierAccountProfile, Direction,
    ShipmentRequest, TrackingSnapshot
)

__all__ = [
    'AWBResult',
    'Address',
    'CanonicalStatus',
    'CarrierAccountProfile',
    'CarrierGateway',
    'Direction',
    'ShipmentRequest',
    'TrackingSnapshot',
]
