"""
Locally generated AWBs for when the carrier cannot be used.

Format: ``{FWD|REV}{13-digit epoch millis}{6-digit sequence}``. The alphabetic
prefix keeps them apart from the carrier's all-digit AWBs.
"""
import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from shipgate.integrations.errors import FallbackGenerationError
from shipgate.integrations.types import AWBResult, Direction, ShipmentRequest

logger = logging.getLogger(__name__)

PREFIXES = {Direction.FORWARD: 'FWD', Direction.REVERSE: 'REV'}
SEQUENCE_MODULUS = 1_000_000

FALLBACK_AWB_RE = re.compile(r'^(FWD|REV)(\d{13})(\d{6})$')


class AtomicSequence:
    """Thread-safe counter shared by every shipment in the process."""

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            self._value = (self._value + 1) % SEQUENCE_MODULUS
            return self._value


@dataclass(frozen=True)
class FallbackAWB:
    direction: Direction
    created_at_ms: int
    sequence: int


def parse_fallback_awb(awb: Optional[str]) -> Optional[FallbackAWB]:
    match = FALLBACK_AWB_RE.match((awb or '').strip().upper())
    if not match:
        return None
    direction = Direction.REVERSE if match.group(1) == 'REV' else Direction.FORWARD
    return FallbackAWB(direction, int(match.group(2)), int(match.group(3)))


def is_fallback_awb(awb: Optional[str]) -> bool:
    return parse_fallback_awb(awb) is not None


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class FallbackAWBGenerator:
    """Creates fallback AWB results."""

    def __init__(self, clock_ms: Callable[[], int] = _epoch_ms,
                 sequence: Optional[Callable[[], int]] = None,
                 tracking_url_template: str = '/api/shipments/{awb}/tracking'):
        self.clock_ms = clock_ms
        self.sequence = sequence or AtomicSequence()
        self.tracking_url_template = tracking_url_template

    def next_awb(self, direction: Direction) -> str:
        try:
            created = int(self.clock_ms())
            seq = int(self.sequence()) % SEQUENCE_MODULUS
        except Exception as e:
            raise FallbackGenerationError(f"Could not generate fallback AWB: {e}") from e
        return f"{PREFIXES[direction]}{created:013d}{seq:06d}"

    def create(self, request: ShipmentRequest, reason: Optional[str] = None) -> AWBResult:
        awb = self.next_awb(request.direction)
        logger.info(f"Generated fallback AWB {awb} for shipment {request.reference} ({reason})")
        return AWBResult(
            success=True,
            awb_number=awb,
            tracking_url=self.tracking_url_template.format(awb=awb),
            fallback_used=True,
            direction=request.direction,
            fallback_reason=reason,
        )
