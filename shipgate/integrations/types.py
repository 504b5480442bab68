"""Value types shared by the carrier integration.

Requests and profiles are frozen; results carry a ``to_dict`` used by the
JSON API.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from shipgate.integrations.errors import ShipmentValidationError


class Direction(Enum):
    FORWARD = "forward"
    REVERSE = "reverse"

    @classmethod
    def parse(cls, value) -> "Direction":
        if isinstance(value, Direction):
            return value
        if value is None or value == "":
            return cls.FORWARD
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ShipmentValidationError([f"Unknown shipment direction: {value}"])


class CanonicalStatus(Enum):
    """Closed set of shipment states every carrier status maps onto."""
    BOOKED = "BOOKED"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    REACHED_HUB = "REACHED_HUB"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    RETURN_TO_ORIGIN = "RETURN_TO_ORIGIN"
    CANCELLED = "CANCELLED"
    LOST = "LOST"
    DAMAGED = "DAMAGED"
    UNKNOWN = "UNKNOWN"


_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class Address:
    name: str
    phone: str
    street: str
    city: str
    state: str
    pincode: str
    area: str = ""
    country: str = "India"
    email: Optional[str] = None

    @property
    def phone_digits(self) -> str:
        return _NON_DIGITS.sub("", self.phone or "")

    @property
    def normalized_phone(self) -> str:
        """Digits only; a country prefix beyond ten digits is dropped."""
        digits = self.phone_digits
        return digits[-10:] if len(digits) > 10 else digits

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Address":
        if not isinstance(data, dict):
            raise ShipmentValidationError(["Address must be an object"])
        return cls(
            name=str(data.get("name") or "").strip(),
            phone=str(data.get("phone") or "").strip(),
            street=str(data.get("street") or data.get("address") or "").strip(),
            area=str(data.get("area") or "").strip(),
            city=str(data.get("city") or "").strip(),
            state=str(data.get("state") or "").strip(),
            pincode=str(data.get("pincode") or data.get("postal_code") or "").strip(),
            country=str(data.get("country") or "India").strip(),
            email=data.get("email"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _pick(data: Dict[str, Any], *keys, default=None):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass(frozen=True)
class ShipmentRequest:
    recipient: Address
    weight_kg: float
    declared_value: float
    piece_count: int
    direction: Direction = Direction.FORWARD
    sender: Optional[Address] = None
    shipment_id: Optional[str] = None
    priority: str = "normal"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShipmentRequest":
        """Parse an API payload; accepts camelCase and snake_case keys."""
        if not isinstance(data, dict):
            raise ShipmentValidationError(["Request body must be a JSON object"])
        recipient = _pick(data, "recipient")
        if recipient is None:
            raise ShipmentValidationError(["Recipient is required"])
        sender = _pick(data, "sender")
        try:
            weight = float(_pick(data, "weightKg", "weight_kg", "weight", default=0))
            value = float(_pick(data, "declaredValue", "declared_value", default=0))
            pieces = int(_pick(data, "pieceCount", "piece_count", "numBoxes", default=0))
        except (TypeError, ValueError, OverflowError):
            raise ShipmentValidationError(["Weight, declared value and piece count must be numbers"])
        if not (math.isfinite(weight) and math.isfinite(value)):
            raise ShipmentValidationError(["Weight and declared value must be finite numbers"])
        shipment_id = _pick(data, "shipmentId", "shipment_id")
        return cls(
            recipient=Address.from_dict(recipient),
            sender=Address.from_dict(sender) if sender else None,
            weight_kg=weight,
            declared_value=value,
            piece_count=pieces,
            direction=Direction.parse(_pick(data, "direction")),
            shipment_id=str(shipment_id) if shipment_id is not None else None,
            priority=str(_pick(data, "priority", default="normal")),
        )

    @property
    def reference(self) -> str:
        return self.shipment_id or "unassigned"


def mask_secret(value: Optional[str], visible: int = 8) -> Optional[str]:
    if not value:
        return None
    return f"{value[:visible]}***"


@dataclass(frozen=True)
class CarrierAccountProfile:
    """Resolved carrier account; read-only once built."""
    customer_code: Optional[str]
    api_key: Optional[str]
    service_type: str = "GROUND EXPRESS"
    commodity_id: str = "Electric items"
    is_reverse_only_account: bool = False
    endpoints: Tuple[str, ...] = ()
    tracking_access_token: Optional[str] = None
    tracking_username: Optional[str] = None
    tracking_password: Optional[str] = None

    @property
    def has_valid_credentials(self) -> bool:
        return bool(self.customer_code and self.api_key)

    @property
    def has_tracking_credentials(self) -> bool:
        return bool(self.tracking_access_token or (self.tracking_username and self.tracking_password))

    @property
    def fallback_mode(self) -> bool:
        return not self.has_valid_credentials

    def describe(self) -> Dict[str, Any]:
        return {
            "customer_code": self.customer_code,
            "api_key": mask_secret(self.api_key),
            "service_type": self.service_type,
            "commodity_id": self.commodity_id,
            "is_reverse_only_account": self.is_reverse_only_account,
            "endpoints": list(self.endpoints),
            "has_valid_credentials": self.has_valid_credentials,
            "has_tracking_credentials": self.has_tracking_credentials,
            "fallback_mode": self.fallback_mode,
        }


@dataclass(frozen=True)
class ConsignmentPayload:
    consignment_type: str  # "forward" or "reverse"
    origin: Address
    destination: Address
    return_to: Address
    weight_kg: float
    declared_value: float
    pieces: int
    customer_reference_number: str
    description: str

    def to_wire(self, profile: CarrierAccountProfile) -> Dict[str, Any]:
        consignment = {
            "customer_code": profile.customer_code,
            "service_type_id": profile.service_type,
            "load_type": "NON-DOCUMENT",
            "description": self.description,
            "dimension_unit": "cm",
            "length": "30",
            "width": "20",
            "height": "15",
            "weight_unit": "kg",
            "weight": str(self.weight_kg),
            "declared_value": str(self.declared_value),
            "num_pieces": str(self.pieces),
            "commodity_id": profile.commodity_id,
            "consignment_type": self.consignment_type,
            "origin_details": _wire_address(self.origin),
            "destination_details": _wire_address(self.destination),
            "return_details": _wire_address(self.return_to),
            "customer_reference_number": self.customer_reference_number,
            "reference_number": "",
        }
        return {"consignments": [consignment]}


def _wire_address(address: Address) -> Dict[str, Any]:
    line_1 = f"{address.street}, {address.area}" if address.area else address.street
    wire = {
        "name": address.name[:50],
        "phone": address.normalized_phone,
        "alternate_phone": "",
        "address_line_1": line_1[:100],
        "address_line_2": "",
        "pincode": address.pincode,
        "city": address.city,
        "state": address.state,
    }
    if address.email:
        wire["email"] = address.email
    return wire


@dataclass
class AWBResult:
    success: bool
    awb_number: Optional[str] = None
    tracking_url: Optional[str] = None
    reference_number: Optional[str] = None
    fallback_used: bool = False
    attempts: int = 0
    elapsed_ms: int = 0
    error: Optional[str] = None
    direction: Optional[Direction] = None
    fallback_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["direction"] = self.direction.value if self.direction else None
        return data


@dataclass
class TrackingEvent:
    scan_code: Optional[str]
    canonical_status: CanonicalStatus
    location: Optional[str]
    timestamp_utc: Optional[datetime]
    description: Optional[str]
    raw_status: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scan_code": self.scan_code,
            "status": self.canonical_status.value,
            "location": self.location,
            "timestamp": self.timestamp_utc.isoformat() if self.timestamp_utc else None,
            "description": self.description,
            "raw_status": self.raw_status,
        }


@dataclass
class TrackingSnapshot:
    awb_number: str
    current_status: CanonicalStatus
    history: List[TrackingEvent] = field(default_factory=list)
    is_fallback: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "awb_number": self.awb_number,
            "current_status": self.current_status.value,
            "history": [event.to_dict() for event in self.history],
            "is_fallback": self.is_fallback,
            "error": self.error,
        }


@dataclass(frozen=True)
class AttemptLogEntry:
    shipment_ref: str
    success: bool
    awb_number: Optional[str]
    is_fallback: bool
    error: Optional[str]
    timestamp_utc: datetime
    attempt: int = 0
    direction: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp_utc"] = self.timestamp_utc.isoformat()
        return data


@dataclass
class CancellationResult:
    cancelled: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ServiceabilityResult:
    serviceable: bool
    estimated_days: Optional[int] = None
    fallback_used: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LabelResult:
    success: bool
    awb_number: str
    label_url: Optional[str] = None
    fallback_used: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
