"""
Carrier gateway facade used by the API layer.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import requests

from shipgate.integrations.account import ConfigurationResolver
from shipgate.integrations.audit import AuditLogger
from shipgate.integrations.carrier_api import CarrierApiClient, CarrierTimeouts
from shipgate.integrations.consignment import ConsignmentBuilder, PINCODE_RE
from shipgate.integrations.errors import AllEndpointsFailedError, CarrierAuthError, CarrierError
from shipgate.integrations.fallback import FallbackAWBGenerator, is_fallback_awb
from shipgate.integrations.orchestrator import AWBOrchestrator
from shipgate.integrations import tracking
from shipgate.integrations.transport import EndpointFailoverTransport
from shipgate.integrations.types import (
    AWBResult, CancellationResult, CanonicalStatus, CarrierAccountProfile, LabelResult,
    ServiceabilityResult, ShipmentRequest, TrackingSnapshot
)

logger = logging.getLogger(__name__)

FALLBACK_LABEL_URL = '/api/labels/fallback-{awb}'


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def estimate_transit_days(origin: str, destination: str) -> int:
    """Rough transit estimate from the postal region (first pincode digit)."""
    distance = abs(int(origin[0]) - int(destination[0]))
    if distance == 0:
        return 2
    if distance == 1:
        return 3
    return 5


class CarrierGateway:
    """Inbound interface: create, track, cancel, serviceability and labels."""

    def __init__(self, profile: CarrierAccountProfile, carrier: CarrierApiClient,
                 orchestrator: AWBOrchestrator, audit: AuditLogger,
                 batch_size: int = 10, batch_pause: float = 1.0,
                 clock_ms: Callable[[], int] = _epoch_ms,
                 sleep: Callable[[float], None] = time.sleep):
        self.profile = profile
        self.carrier = carrier
        self.orchestrator = orchestrator
        self.audit = audit
        self.batch_size = max(1, int(batch_size))
        self.batch_pause = batch_pause
        self.clock_ms = clock_ms
        self.sleep = sleep

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any], audit: AuditLogger,
                      session: Optional[requests.Session] = None,
                      sleep: Callable[[float], None] = time.sleep) -> 'CarrierGateway':
        """Wire a gateway from a Flask config mapping."""
        profile = ConfigurationResolver(settings).resolve()
        transport = EndpointFailoverTransport(session=session)
        timeouts = CarrierTimeouts(
            create=float(settings.get('CARRIER_CREATE_TIMEOUT', 45)),
            tracking=float(settings.get('CARRIER_TRACKING_TIMEOUT', 30)),
            label=float(settings.get('CARRIER_LABEL_TIMEOUT', 30)),
            cancel=float(settings.get('CARRIER_CANCEL_TIMEOUT', 30)),
            serviceability=float(settings.get('CARRIER_SERVICEABILITY_TIMEOUT', 15)),
        )
        carrier = CarrierApiClient(profile, transport, timeouts)
        fallback = FallbackAWBGenerator(
            tracking_url_template=settings.get('FALLBACK_TRACKING_URL_TEMPLATE', '/api/shipments/{awb}/tracking')
        )
        orchestrator = AWBOrchestrator(
            profile, carrier, fallback, audit,
            builder=ConsignmentBuilder(reference_prefix=settings.get('SHIPMENT_REFERENCE_PREFIX', 'SG')),
            max_retries=int(settings.get('CARRIER_MAX_RETRIES', 3)),
            retry_delay=float(settings.get('CARRIER_RETRY_DELAY_SECONDS', 2.0)),
            tracking_url_template=settings.get('CARRIER_TRACKING_URL_TEMPLATE', '{awb}'),
            sleep=sleep,
        )
        return cls(
            profile, carrier, orchestrator, audit,
            batch_size=int(settings.get('TRACKING_BATCH_SIZE', 10)),
            batch_pause=float(settings.get('TRACKING_BATCH_PAUSE_SECONDS', 1.0)),
            sleep=sleep,
        )

    # Shipments

    def create_shipment(self, request: ShipmentRequest) -> AWBResult:
        return self.orchestrator.create_awb(request)

    # Tracking

    def track_shipment(self, awb: str) -> TrackingSnapshot:
        awb = (awb or '').strip()
        if not awb:
            return TrackingSnapshot(awb, CanonicalStatus.UNKNOWN, error='AWB number is required')

        if is_fallback_awb(awb):
            events = tracking.synthesize(awb, self.clock_ms())
            return TrackingSnapshot(awb, tracking.current_status(events), events, is_fallback=True)

        if not self.profile.has_tracking_credentials:
            return TrackingSnapshot(
                awb, CanonicalStatus.UNKNOWN, error='Carrier tracking credentials not configured'
            )

        try:
            events = tracking.normalize(self.carrier.fetch_tracking(awb))
        except CarrierError as e:
            logger.warning(f"Tracking lookup failed for {awb}: {e}")
            return TrackingSnapshot(awb, CanonicalStatus.UNKNOWN, error=str(e))
        return TrackingSnapshot(awb, tracking.current_status(events), events)

    def track_shipments(self, awbs: Iterable[str]) -> List[TrackingSnapshot]:
        """Track many AWBs in batches, keeping input order."""
        awbs = list(awbs)
        results: List[TrackingSnapshot] = []
        batches = [awbs[i:i + self.batch_size] for i in range(0, len(awbs), self.batch_size)]
        for index, batch in enumerate(batches):
            if index:
                self.sleep(self.batch_pause)
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                results.extend(executor.map(self.track_shipment, batch))
        return results

    # Cancellation

    def cancel_shipment(self, awbs: Iterable[str]) -> CancellationResult:
        unique = list(dict.fromkeys(a.strip() for a in awbs if a and a.strip()))
        result = CancellationResult()
        real = []
        for awb in unique:
            if is_fallback_awb(awb):
                result.cancelled.append(awb)
            else:
                real.append(awb)
        if not real:
            return result

        if not self.profile.has_valid_credentials:
            result.failed.extend(real)
            result.error = 'Carrier credentials not configured'
            return result

        try:
            cancelled, failed = self.carrier.cancel(real)
        except CarrierError as e:
            logger.error(f"Carrier cancellation failed for {real}: {e}")
            result.failed.extend(real)
            result.error = str(e)
            return result
        result.cancelled.extend(cancelled)
        result.failed.extend(failed)
        return result

    # Serviceability

    def check_serviceability(self, origin_pincode: str, destination_pincode: str) -> ServiceabilityResult:
        origin = (origin_pincode or '').strip()
        destination = (destination_pincode or '').strip()
        if not PINCODE_RE.fullmatch(origin) or not PINCODE_RE.fullmatch(destination):
            return ServiceabilityResult(False, error='Pincodes must be exactly 6 digits')

        if not self.profile.has_valid_credentials:
            return ServiceabilityResult(True, estimate_transit_days(origin, destination), fallback_used=True)

        try:
            serviceable, days = self.carrier.check_pincodes(origin, destination)
        except CarrierError as e:
            logger.warning(f"Serviceability check failed for {origin}->{destination}: {e}")
            return ServiceabilityResult(
                True, estimate_transit_days(origin, destination), fallback_used=True, error=str(e)
            )
        return ServiceabilityResult(serviceable, days)

    # Labels

    def get_label(self, awb: str) -> LabelResult:
        awb = (awb or '').strip()
        if not awb:
            return LabelResult(False, awb, error='AWB number is required')
        if is_fallback_awb(awb) or self.profile.fallback_mode:
            return LabelResult(True, awb, FALLBACK_LABEL_URL.format(awb=awb), fallback_used=True)

        try:
            return LabelResult(True, awb, self.carrier.fetch_label(awb))
        except (CarrierAuthError, AllEndpointsFailedError) as e:
            logger.warning(f"Label fetch failed for {awb}, using fallback label: {e}")
            return LabelResult(True, awb, FALLBACK_LABEL_URL.format(awb=awb), fallback_used=True, error=str(e))
        except CarrierError as e:
            logger.error(f"Label fetch failed for {awb}: {e}")
            return LabelResult(False, awb, error=str(e))

    # Diagnostics

    def status(self) -> Dict[str, Any]:
        details = self.profile.describe()
        details.update({
            'max_retries': self.orchestrator.max_retries,
            'retry_delay_seconds': self.orchestrator.retry_delay,
            'tracking_batch_size': self.batch_size,
        })
        return details
