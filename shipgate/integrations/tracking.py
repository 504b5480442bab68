"""Tracking normalization.

Carrier scan codes and status words are mapped onto ``CanonicalStatus``
through a closed alias table; anything not in the table is ``UNKNOWN``.
Fallback AWBs get a synthetic, deterministic progression derived from the
creation time embedded in the AWB.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from shipgate.integrations.fallback import parse_fallback_awb
from shipgate.integrations.types import CanonicalStatus, Direction, TrackingEvent

logger = logging.getLogger(__name__)

_S = CanonicalStatus

STATUS_ALIASES: Dict[str, CanonicalStatus] = {
    # booking
    'BK': _S.BOOKED,
    'BOOKED': _S.BOOKED,
    'BOOKING': _S.BOOKED,
    'MANIFESTED': _S.BOOKED,
    'PICKUP_SCHEDULED': _S.BOOKED,
    # pickup
    'PU': _S.PICKED_UP,
    'PICKED_UP': _S.PICKED_UP,
    'PICKUP_COMPLETED': _S.PICKED_UP,
    'COLLECTED': _S.PICKED_UP,
    # line haul
    'IT': _S.IN_TRANSIT,
    'IN_TRANSIT': _S.IN_TRANSIT,
    'HELD_UP': _S.IN_TRANSIT,
    'MISROUTED': _S.IN_TRANSIT,
    'DISPATCHED': _S.IN_TRANSIT,
    # hub
    'RH': _S.REACHED_HUB,
    'REACHED_HUB': _S.REACHED_HUB,
    'REACHED_DESTINATION': _S.REACHED_HUB,
    'REACHED_DESTINATION_HUB': _S.REACHED_HUB,
    # last mile
    'OD': _S.OUT_FOR_DELIVERY,
    'OUT_FOR_DELIVERY': _S.OUT_FOR_DELIVERY,
    'LOADED_FOR_DELIVERY': _S.OUT_FOR_DELIVERY,
    'DISPATCHED_FOR_DELIVERY': _S.OUT_FOR_DELIVERY,
    'DELIVERY_ATTEMPTED': _S.OUT_FOR_DELIVERY,
    'UNDELIVERED': _S.OUT_FOR_DELIVERY,
    # delivered
    'DL': _S.DELIVERED,
    'DELIVERED': _S.DELIVERED,
    'DELIVERY_COMPLETED': _S.DELIVERED,
    'POD_RECEIVED': _S.DELIVERED,
    # returns
    'RTO': _S.RETURN_TO_ORIGIN,
    'RETURN_TO_ORIGIN': _S.RETURN_TO_ORIGIN,
    'RTO_IN_TRANSIT': _S.RETURN_TO_ORIGIN,
    'RTO_DELIVERED': _S.RETURN_TO_ORIGIN,
    # exceptions
    'CANCELLED': _S.CANCELLED,
    'CANCELED': _S.CANCELLED,
    'SHIPMENT_CANCELLED': _S.CANCELLED,
    'LOST': _S.LOST,
    'DAMAGED': _S.DAMAGED,
}

DISPLAY_TEXT = {
    _S.BOOKED: 'Shipment Booked',
    _S.PICKED_UP: 'Picked Up',
    _S.IN_TRANSIT: 'In Transit',
    _S.REACHED_HUB: 'Reached Destination Hub',
    _S.OUT_FOR_DELIVERY: 'Out for Delivery',
    _S.DELIVERED: 'Delivered',
    _S.RETURN_TO_ORIGIN: 'Returned to Origin',
    _S.CANCELLED: 'Cancelled',
    _S.LOST: 'Lost',
    _S.DAMAGED: 'Damaged',
    _S.UNKNOWN: 'Status Unknown',
}

_SEPARATORS = re.compile(r'[\s\-_]+')


def _alias_key(raw: Any) -> str:
    return _SEPARATORS.sub('_', str(raw).strip().upper()).strip('_')


def normalize_status(raw: Any) -> CanonicalStatus:
    """Map any carrier status to a canonical one. Never raises."""
    if raw is None:
        return _S.UNKNOWN
    return STATUS_ALIASES.get(_alias_key(raw), _S.UNKNOWN)


def display_text(status: CanonicalStatus) -> str:
    return DISPLAY_TEXT.get(status, DISPLAY_TEXT[_S.UNKNOWN])


_TIMESTAMP_FORMATS = (
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%d-%m-%Y %H:%M:%S',
    '%d-%m-%Y %H:%M',
    '%d/%m/%Y %H:%M:%S',
    '%d/%m/%Y %H:%M',
    '%d%m%Y %H%M',
)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a carrier timestamp into an aware UTC datetime, or None."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        # epoch millis
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        text = str(value).strip()
        parsed = None
        try:
            parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            for fmt in _TIMESTAMP_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
        if parsed is None:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _first(event: Dict[str, Any], *keys):
    for key in keys:
        value = event.get(key)
        if value not in (None, ''):
            return value
    return None


def normalize_event(event: Dict[str, Any]) -> TrackingEvent:
    code = _first(event, 'statusCode', 'scan_code', 'strCode', 'code')
    status_text = _first(event, 'status', 'strAction', 'statusText')
    canonical = normalize_status(code)
    if canonical is _S.UNKNOWN:
        canonical = normalize_status(status_text)
    return TrackingEvent(
        scan_code=str(code) if code is not None else None,
        canonical_status=canonical,
        location=_first(event, 'location', 'strOrigin', 'city'),
        timestamp_utc=parse_timestamp(_first(event, 'statusDateTime', 'timestamp', 'eventTime')),
        description=_first(event, 'statusDescription', 'description', 'remarks'),
        raw_status=str(status_text) if status_text is not None else None,
    )


def normalize(carrier_events: Iterable[Any]) -> List[TrackingEvent]:
    """Carrier events -> canonical events, oldest first when orderable."""
    events = []
    for raw in carrier_events or []:
        if not isinstance(raw, dict):
            logger.debug(f"Skipping malformed tracking event: {raw!r}")
            continue
        events.append(normalize_event(raw))
    if events and all(e.timestamp_utc is not None for e in events):
        events.sort(key=lambda e: e.timestamp_utc)
    return events


def current_status(events: List[TrackingEvent]) -> CanonicalStatus:
    return events[-1].canonical_status if events else _S.UNKNOWN


HUBS = ('Mumbai', 'Delhi', 'Bangalore', 'Chennai', 'Kolkata', 'Hyderabad', 'Pune', 'Local Facility')

# (status, scan code, hours after booking)
SYNTHETIC_STAGES = (
    (_S.BOOKED, 'BK', 0),
    (_S.PICKED_UP, 'PU', 2),
    (_S.IN_TRANSIT, 'IT', 6),
    (_S.REACHED_HUB, 'RH', 24),
    (_S.OUT_FOR_DELIVERY, 'OD', 36),
    (_S.DELIVERED, 'DL', 48),
)

FORWARD_DESCRIPTIONS = {
    _S.BOOKED: 'Shipment booked',
    _S.PICKED_UP: 'Shipment picked up from sender',
    _S.IN_TRANSIT: 'Shipment in transit',
    _S.REACHED_HUB: 'Shipment reached destination hub',
    _S.OUT_FOR_DELIVERY: 'Shipment out for delivery',
    _S.DELIVERED: 'Shipment delivered',
}

REVERSE_DESCRIPTIONS = {
    _S.BOOKED: 'Return pickup booked',
    _S.PICKED_UP: 'Return package picked up from customer',
    _S.IN_TRANSIT: 'Return package in transit to warehouse',
    _S.REACHED_HUB: 'Return package reached processing hub',
    _S.OUT_FOR_DELIVERY: 'Return package out for delivery to warehouse',
    _S.DELIVERED: 'Return package delivered to warehouse',
}


def synthesize(awb: str, now_ms: int) -> List[TrackingEvent]:
    """Synthetic history for a fallback AWB at time ``now_ms``.

    Returns an empty list for anything that is not a fallback AWB.
    """
    parsed = parse_fallback_awb(awb)
    if parsed is None:
        return []
    age_hours = (now_ms - parsed.created_at_ms) / 3_600_000
    created = datetime.fromtimestamp(parsed.created_at_ms / 1000, tz=timezone.utc)
    origin_hub = HUBS[parsed.sequence % len(HUBS)]
    destination_hub = HUBS[(parsed.sequence + 3) % len(HUBS)]
    descriptions = REVERSE_DESCRIPTIONS if parsed.direction is Direction.REVERSE else FORWARD_DESCRIPTIONS

    events = []
    for status, code, hours in SYNTHETIC_STAGES:
        if hours and age_hours <= hours:
            break
        location = origin_hub if hours < 24 else destination_hub
        events.append(TrackingEvent(
            scan_code=code,
            canonical_status=status,
            location=location,
            timestamp_utc=created + timedelta(hours=hours),
            description=descriptions[status],
            raw_status=status.value,
        ))
    return events
